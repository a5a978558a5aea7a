#!/usr/bin/env python3
import argparse
import asyncio
import logging
import os
import signal
import sys

from colorama import Fore, Style, init
from dotenv import load_dotenv

from emu86.console import format_error, format_progress, format_state
from emu86.scheduler import ExecutionScheduler, RunStatus

logger = logging.getLogger('EMU86')


def _env_int(name, default, base=10, minimum=None):
    """Read an integer setting, falling back to the default on bad input"""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw, base)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if minimum is not None and value < minimum:
        logger.warning(f"Ignoring {name}={raw!r} below {minimum}, using {default}")
        return default
    return value


def positive_int(text):
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {text}")
    return value


def hex_address(text):
    try:
        return int(text, 16)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hex address: {text}")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Run a 16-bit assembly program and show the final machine state",
    )
    parser.add_argument("program", help="Assembly source file ('-' reads stdin)")
    parser.add_argument("--batch-size", type=positive_int, default=None,
                        help="Instructions per batch (default: EMU86_BATCH_SIZE or 100)")
    parser.add_argument("--memory-address", type=hex_address, default=None,
                        help="Hex start address of the memory panel (default: EMU86_MEMORY_ADDRESS or 0)")
    parser.add_argument("--rows", type=positive_int, default=8, help="Rows in the memory panel")
    parser.add_argument("--trace", action="store_true",
                        help="Print the register panel after every instruction")
    parser.add_argument("--log-level", default=None,
                        help="Logging level (default: EMU86_LOG_LEVEL or INFO)")
    return parser


def read_program(path):
    if path == '-':
        return sys.stdin.read()
    with open(path, encoding='utf-8') as f:
        return f.read()


async def run_program(scheduler, text):
    # Ctrl+C requests a cooperative stop instead of killing the loop
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, scheduler.stop)
    except (NotImplementedError, RuntimeError):
        pass
    try:
        return await scheduler.run(text)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


def main(argv=None):
    """Main function to run a program from the command line"""
    # Load environment variables
    load_dotenv()
    args = build_parser().parse_args(argv)

    # Setup logging
    level_name = (args.log_level or os.getenv('EMU86_LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        filename=os.getenv('EMU86_LOG_FILE', 'emu86.log'),
    )

    # Initialize colorama for cross-platform colored terminal output
    init(autoreset=True)

    if args.batch_size is not None:
        batch_size = args.batch_size
    else:
        batch_size = _env_int('EMU86_BATCH_SIZE', ExecutionScheduler.BATCH_SIZE, minimum=1)
    if args.memory_address is not None:
        memory_address = args.memory_address
    else:
        memory_address = _env_int('EMU86_MEMORY_ADDRESS', 0, base=16, minimum=0)

    try:
        text = read_program(args.program)
    except OSError as e:
        logger.error(f"Cannot read program: {e}")
        print(f"{Fore.RED}Cannot read program: {e}{Style.RESET_ALL}")
        return 2

    scheduler = ExecutionScheduler(batch_size=batch_size)
    scheduler.on_progress = lambda done, total: print(format_progress(done, total))
    scheduler.on_error = lambda line, message: print(format_error(line, message))
    if args.trace:
        scheduler.on_state = lambda snapshot: print(
            format_state(snapshot, scheduler.state.memory, memory_address, args.rows))

    result = asyncio.run(run_program(scheduler, text))

    print(format_state(scheduler.state.snapshot(), scheduler.state.memory, memory_address, args.rows))
    print(f"Instructions executed: {result.instructions_executed}")
    if result.status is RunStatus.CANCELLED:
        print(f"{Fore.YELLOW}Execution stopped by user.{Style.RESET_ALL}")
        return 130
    if result.status is RunStatus.FAILED:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
