#!/usr/bin/env python3
"""Hook Miner - Main Entry Point"""

import argparse
import json
import logging
import signal
import sys
import threading
from typing import List, Optional

import yaml

from core.address import ensure_hash_primitive, normalize_address, normalize_bytecode, to_checksum
from core.config import config
from core.constants import (
    DEFAULT_CONFIG_FILE,
    DIFFICULTY_FALLBACK,
    FLAG_MASK,
    MINER_NAME,
    MINER_VERSION,
    MINING_MODES,
)
from core.difficulty import (
    estimate_duration,
    estimate_mining_difficulty,
    iterations_for_probability,
    success_probability,
)
from core.exceptions import (
    ConfigurationError,
    InvalidInputError,
    PrimitiveUnavailableError,
    SearchCancelledError,
    SearchExhaustedError,
    WorkerError,
)
from core.flags import (
    address_flags,
    flags_to_names,
    flags_to_permissions,
    format_flags,
    hook_names_to_flags,
    validate_hook_address,
)
from core.hook_miner import mine_hook_address_sync, run_hook_miner
from core.logger import setup_logging
from core.mining_utils import parse_int
from core.progress import ProgressReporter
from core.types import DifficultyEstimate, MiningMode, MiningResult

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_INVALID = 2
EXIT_PRIMITIVE = 3
EXIT_WORKER = 4


def _init_multiprocessing():
    """Initialize multiprocessing with appropriate settings."""
    import multiprocessing as mp
    # Same start method on every platform
    try:
        mp.set_start_method('spawn', force=False)
    except RuntimeError:
        # Already set, ignore
        pass


def _flags_arg(value: str) -> int:
    try:
        return parse_int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid flag mask: {value!r}")


def _positive_int(value: str) -> int:
    try:
        number = parse_int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0: {value!r}")
    return number


def _add_flag_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--hooks", action="append", metavar="NAME[,NAME...]",
                       help="Hook callback names, e.g. beforeSwap,afterSwap (repeatable)")
    group.add_argument("--flags", type=_flags_arg, metavar="MASK",
                       help="Raw flag mask, e.g. 0xC0")


def _resolve_flags(args: argparse.Namespace) -> int:
    if args.flags is not None:
        return args.flags
    names = [name for chunk in args.hooks for name in chunk.split(",") if name.strip()]
    return hook_names_to_flags(names)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=MINER_NAME,
        description="Mine CREATE2 salts for Uniswap v4 hook addresses",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {MINER_VERSION}")
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="YAML configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show info logs on the console")
    parser.add_argument("--log-file", default=None, help="Also log to this rotating file")
    sub = parser.add_subparsers(dest="command", required=True)

    mine = sub.add_parser("mine", help="Search for a salt")
    _add_flag_options(mine)
    code = mine.add_mutually_exclusive_group(required=True)
    code.add_argument("--bytecode", help="Init code as hex")
    code.add_argument("--bytecode-file", help="File containing init code as hex")
    mine.add_argument("--constructor-args", default=None, help="ABI-encoded constructor args as hex")
    mine.add_argument("--deployer", default=None, help="CREATE2 deployer (default from config)")
    mine.add_argument("--max-iterations", type=_positive_int, default=None, help="Salts to try")
    mine.add_argument("--mode", choices=MINING_MODES, default=None,
                      help="Search mode (default from config)")
    mine.add_argument("--workers", type=_positive_int, default=None, help="CPU workers for parallel mode")
    mine.add_argument("--json", action="store_true", help="Print the result as JSON")
    mine.add_argument("--yes", "-y", action="store_true", help="Do not ask before very slow searches")
    mine.add_argument("--no-progress", action="store_true", help="Disable the progress line")

    estimate = sub.add_parser("estimate", help="Estimate search difficulty")
    _add_flag_options(estimate)
    estimate.add_argument("--max-iterations", type=_positive_int, default=None,
                          help="Bound used for the success probability")
    estimate.add_argument("--json", action="store_true", help="Print the estimate as JSON")

    verify = sub.add_parser("verify", help="Check that an address carries hook flags")
    verify.add_argument("address", help="Hook address")
    _add_flag_options(verify)

    flags = sub.add_parser("flags", help="Show the flag mask for hook names")
    _add_flag_options(flags)

    cfg = sub.add_parser("config", help="Write the effective configuration to a YAML file")
    cfg.add_argument("--set", action="append", default=[], dest="overrides", metavar="KEY=VALUE",
                     help="Override a setting, e.g. miner.mode=sync (repeatable)")
    cfg.add_argument("--output", default=None, help="File to write (default: the --config path)")

    return parser


def _print_estimate(flags: int, estimate: DifficultyEstimate, max_iterations: Optional[int]) -> None:
    print(f"Flags:       {format_flags(flags)} {', '.join(flags_to_names(flags)) or '(none)'}")
    print(f"Difficulty:  {estimate.difficulty} (~{estimate.estimated_iterations:,} iterations, "
          f"{estimate.flag_count} flag bits)")
    if max_iterations is not None:
        print(f"Success chance within {max_iterations:,} iterations: "
              f"{success_probability(flags, max_iterations):.2%}")
    print(f"Iterations for a 90% chance: {iterations_for_probability(flags, 0.9):,}")


def _print_result(result: MiningResult, flags: int, as_json: bool) -> None:
    if as_json:
        payload = result.as_dict()
        payload["flags"] = flags
        payload["hooks"] = flags_to_names(flags)
        print(json.dumps(payload, indent=2))
        return
    print(f"Hook address: {result.address_hex}")
    print(f"Salt:         {result.salt_hex}")
    print(f"Iterations:   {result.iterations}")


def _confirm_slow_search(estimate: DifficultyEstimate) -> bool:
    if not sys.stdin.isatty():
        return True
    answer = input(f"Difficulty is {estimate.difficulty} (~{estimate.estimated_iterations:,} iterations). Continue? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def _cmd_mine(args: argparse.Namespace) -> int:
    flags = _resolve_flags(args)
    deployer = args.deployer or config.get('miner.deployer')
    if args.bytecode_file:
        try:
            with open(args.bytecode_file, 'r', encoding='utf-8') as f:
                bytecode = f.read().strip()
        except OSError as e:
            raise InvalidInputError("bytecode_file", str(e)) from e
    else:
        bytecode = args.bytecode
    bytecode = normalize_bytecode(bytecode)
    normalize_address(deployer)
    ensure_hash_primitive()

    mode: MiningMode = args.mode or config.get('miner.mode')
    if args.max_iterations is not None:
        max_iterations = args.max_iterations
    elif mode == "sync":
        max_iterations = config.get('miner.sync_max_iterations')
    else:
        max_iterations = config.get('miner.max_iterations')

    estimate = estimate_mining_difficulty(flags)
    if not args.json:
        _print_estimate(flags, estimate, max_iterations)
    logging.info(f"Mode: {mode}, deployer: {deployer}, bound: {max_iterations}")

    if estimate.difficulty == DIFFICULTY_FALLBACK and not args.yes and not _confirm_slow_search(estimate):
        logging.warning("Search aborted by user")
        return EXIT_NOT_FOUND

    reporter = None
    if not args.no_progress and not args.json and mode != "sync":
        reporter = ProgressReporter(total=max_iterations, estimate=estimate)

    try:
        if mode == "sync":
            result = mine_hook_address_sync(deployer, flags, bytecode, max_iterations,
                                            constructor_args=args.constructor_args)
            if result is None:
                raise SearchExhaustedError(max_iterations)
        elif mode == "parallel":
            result = _mine_parallel(args, deployer, flags, bytecode, max_iterations, reporter)
        else:
            result = _mine_async(args, deployer, flags, bytecode, max_iterations, reporter)
    finally:
        if reporter is not None:
            reporter.finish()

    _print_result(result, flags, args.json)
    if reporter is not None and reporter.elapsed > 0:
        expected = estimate_duration(estimate, reporter.hashrate)
        logging.info(f"Finished in {reporter.elapsed:.1f}s (expected ~{expected:.1f}s)")
    return EXIT_OK


def _mine_async(args, deployer, flags, bytecode, max_iterations, reporter) -> MiningResult:
    cancel_event = threading.Event()

    # Cancel at the next batch boundary instead of killing the search mid-batch
    def signal_handler(sig, frame):
        logging.info("Shutdown requested by user")
        cancel_event.set()

    previous = signal.signal(signal.SIGINT, signal_handler)
    try:
        return run_hook_miner(
            deployer,
            flags,
            bytecode,
            max_iterations=max_iterations,
            on_progress=reporter,
            constructor_args=args.constructor_args,
            batch_size=config.get('miner.batch_size'),
            progress_interval=config.get('miner.progress_interval'),
            cancel_event=cancel_event,
        )
    finally:
        signal.signal(signal.SIGINT, previous)


def _mine_parallel(args, deployer, flags, bytecode, max_iterations, reporter) -> MiningResult:
    from core.parallel_miner import ParallelHookMiner

    _init_multiprocessing()
    workers = args.workers if args.workers is not None else config.get('cpu.workers')
    miner = ParallelHookMiner(workers=workers or None, chunk_size=config.get('cpu.chunk_size'))
    try:
        miner.start()
        return miner.mine(deployer, flags, bytecode, max_iterations,
                          on_progress=reporter, constructor_args=args.constructor_args)
    except KeyboardInterrupt:
        logging.info("Shutdown requested by user")
        raise SearchCancelledError(0)
    finally:
        miner.stop()


def _cmd_estimate(args: argparse.Namespace) -> int:
    flags = _resolve_flags(args)
    estimate = estimate_mining_difficulty(flags)
    if args.json:
        payload = {
            "flags": flags & FLAG_MASK,
            "hooks": flags_to_names(flags),
            "estimated_iterations": estimate.estimated_iterations,
            "difficulty": estimate.difficulty,
            "flag_count": estimate.flag_count,
            "iterations_for_90_percent": iterations_for_probability(flags, 0.9),
            "permissions": flags_to_permissions(flags),
        }
        if args.max_iterations is not None:
            payload["success_probability"] = success_probability(flags, args.max_iterations)
        print(json.dumps(payload, indent=2))
    else:
        _print_estimate(flags, estimate, args.max_iterations)
    return EXIT_OK


def _cmd_verify(args: argparse.Namespace) -> int:
    flags = _resolve_flags(args)
    address = normalize_address(args.address, field="address")
    actual = address_flags(address)
    if validate_hook_address(address, flags):
        print(f"{to_checksum(address)} carries {format_flags(flags)}")
        return EXIT_OK
    print(f"{to_checksum(address)} carries {format_flags(actual)}, expected {format_flags(flags)}")
    return EXIT_NOT_FOUND


def _cmd_flags(args: argparse.Namespace) -> int:
    flags = _resolve_flags(args)
    print(format_flags(flags))
    for name in flags_to_names(flags):
        print(f"  {name}")
    return EXIT_OK


def _cmd_config(args: argparse.Namespace) -> int:
    for item in args.overrides:
        key, sep, raw = item.partition("=")
        if not sep or not key.strip():
            raise InvalidInputError("set", f"expected KEY=VALUE, got {item!r}")
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise InvalidInputError("set", f"unparseable value for {key.strip()}: {e}") from e
        config.set(key.strip(), value)

    config.validate()
    output = args.output or args.config
    config.save(output)
    print(f"Wrote configuration to {output}")
    return EXIT_OK


COMMANDS = {
    "mine": _cmd_mine,
    "estimate": _cmd_estimate,
    "verify": _cmd_verify,
    "flags": _cmd_flags,
    "config": _cmd_config,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config.load(args.config)
    except ConfigurationError as e:
        setup_logging(console_level=logging.ERROR)
        logging.error(str(e))
        return EXIT_INVALID

    # Initialize logging
    setup_logging(
        log_file=args.log_file or config.get('logging.file'),
        level=config.get('logging.level'),
        console_level=logging.INFO if args.verbose else config.get('logging.console_level'),
    )

    try:
        return COMMANDS[args.command](args)
    except (InvalidInputError, ConfigurationError) as e:
        logging.error(str(e))
        return EXIT_INVALID
    except (SearchExhaustedError, SearchCancelledError) as e:
        logging.warning(str(e))
        if not getattr(args, "json", False):
            print(f"No salt found: {e}")
        return EXIT_NOT_FOUND
    except PrimitiveUnavailableError as e:
        logging.critical(str(e))
        return EXIT_PRIMITIVE
    except WorkerError as e:
        logging.error(str(e))
        return EXIT_WORKER


if __name__ == "__main__":
    sys.exit(main())
