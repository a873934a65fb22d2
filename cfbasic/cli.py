import logging
import sys

import click
from rich.console import Console
from rich.traceback import install

from cfbasic.config import VERSION, Settings, parse_memory_size
from cfbasic.errors import OutOfMemoryError, SystemMemoryError
from cfbasic.interpreter import Interpreter
from cfbasic.interrupts import break_on_sigint
from cfbasic.logging import Logger
from cfbasic.memory import Allocator
from cfbasic.repl import Repl
from cfbasic.screen import Screen


def _memory_size(ctx, param, value):
    if value is None:
        return None
    try:
        return parse_memory_size(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("filename", required=False, type=click.Path(dir_okay=False))
@click.option("--MEM", "-M", "memory", callback=_memory_size, metavar="SIZE",
              help="Memory limit, e.g. 64K, 2048K, 16M (default 64K).")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Log level for messages on stderr.")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write log messages to this file.")
@click.version_option(VERSION, "-v", "--version", message="CFBASIC V%(version)s")
def main(filename, memory, log_level, log_file):
    """CFBasic, a Microsoft BASIC interpreter.

    With FILENAME the program is loaded and run, otherwise an interactive
    session starts.
    """
    install(show_locals=False)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise click.ClickException(str(e))
    if memory is not None:
        settings.memory_limit = memory
    if log_level:
        settings.log_level = log_level.upper()
    if log_file:
        settings.log_file = log_file

    logger = Logger("cfbasic", settings.log_file, getattr(logging, settings.log_level, logging.WARNING)).get_logger()
    logger.debug(f"Memory limit: {settings.memory_limit} bytes")

    try:
        memory = Allocator(settings.memory_limit)
        screen = Screen(Console(highlight=False), memory, settings.rows, settings.cols)
        interpreter = Interpreter(screen, memory)

        if filename:
            with break_on_sigint(interpreter.break_flag):
                ok = interpreter.run_file(filename)
            report = interpreter.take_error()
            if report is not None:
                screen.write(report + "\n")
            sys.exit(0 if ok else 1)

        screen.clear()
        Repl(interpreter, screen).run()
    except OutOfMemoryError as e:
        # Only reachable while setting up, e.g. a limit too small for the screen buffer
        Console(stderr=True).print(f"[red]{e.report()}[/red] (memory limit {settings.memory_limit} bytes)")
        sys.exit(1)
    except SystemMemoryError as e:
        Console(stderr=True).print(f"[red]Fatal error:[/red] {e}")
        logger.exception("Host allocator failure")
        sys.exit(1)


if __name__ == "__main__":
    main()
