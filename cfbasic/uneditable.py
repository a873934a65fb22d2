from typing import Any


def uneditable(cls: Any):
    """Freezes the attributes of every instance of ``cls`` once they are set.

    The first assignment of a name (done by ``__init__``) goes through; any later
    re-assignment or deletion of that name raises. Used for lexer tokens, which
    must not change after the lexer hands them out.

    Args:
        cls (Any): The class to be decorated.

    Raises:
        TypeError: If an attempt is made to reassign an existing attribute.
        TypeError: If an attempt is made to delete an existing attribute.

    Returns:
        type: The same class with guarded ``__setattr__`` and ``__delattr__``.
    """
    orig_setattr, orig_delattr = cls.__setattr__, cls.__delattr__

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, name):
            raise TypeError(f"'{type(self).__name__}' attribute '{name}' is read-only")
        return orig_setattr(self, name, value)

    def __delattr__(self, name: str) -> None:
        if hasattr(self, name):
            raise TypeError(f"'{type(self).__name__}' attribute '{name}' cannot be deleted")
        return orig_delattr(self, name)

    cls.__setattr__ = __setattr__
    cls.__delattr__ = __delattr__
    return cls
