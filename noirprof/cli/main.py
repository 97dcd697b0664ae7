"""noirprof CLI — constraint and proving-cost profiler for Noir ACIR artifacts.

Usage:
    noirprof analyze <circuit.json> [--format text|json]   Analyze a circuit
    noirprof compare <a.json> <b.json>                     Compare two circuits
    noirprof batch <dir>                                   Analyze every circuit in a directory
    noirprof stats <dir>                                   Emit CSV research statistics
    noirprof calibrate --dir <dir> [--reset]               Calibrate the cost model
    noirprof config                                        Show current configuration
    noirprof help                                          Show usage guide

Examples:
    noirprof analyze target/main.json
    noirprof analyze circuit.json --format json > analysis.json
    noirprof stats circuits_dir > research_data.csv
    noirprof calibrate --dir example_circuits --reset
"""

from __future__ import annotations

import argparse
import sys
import time

from noirprof.analyzer.batch import BatchItem, batch_analyze
from noirprof.analyzer.circuit_analyzer import CircuitAnalyzer
from noirprof.analyzer.comparator import (
    attribute_delta,
    compare_circuits,
    match_quality,
)
from noirprof.core.clock import variability
from noirprof.core.config import get_settings
from noirprof.core.cost_db import get_cost_database, reset_cost_database
from noirprof.core.errors import ProfilerError
from noirprof.core.logging import setup_logging
from noirprof.core.types import CircuitAnalysis
from noirprof.reports.generator import ReportGenerator

__version__ = "1.0.0"


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


def _pct_color(percent: float, high: float = 50.0, mid: float = 20.0) -> str:
    if percent > high:
        return _RED + _BOLD
    if percent > mid:
        return _YELLOW
    return _GREEN


def _signed(value: float, fmt: str = "d") -> str:
    if value < 0:
        return _c(f"-{abs(value):{fmt}}", _RED + _BOLD)
    if value > 0:
        return _c(f"+{value:{fmt}}", _GREEN + _BOLD)
    return f"{0:{fmt}}"


# ── Banner ───────────────────────────────────────────────────────────────────

BANNER = rf"""
{_BOLD}{_CYAN} _   _       _      ____             __
| \ | | ___ (_)_ __|  _ \ _ __ ___  / _|
|  \| |/ _ \| | '__| |_) | '__/ _ \| |_
| |\  | (_) | | |  |  __/| | | (_) |  _|
|_| \_|\___/|_|_|  |_|   |_|  \___/|_|{_RESET}
  {_DIM}Noir circuit constraint profiler — v{__version__}{_RESET}
"""


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="noirprof",
        description="noirprof — constraint and proving-cost profiler for Noir circuits",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--no-banner", action="store_true", help="Suppress the startup banner")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")

    sub = parser.add_subparsers(dest="command")

    # ── analyze ──────────────────────────────────────────────────────────────
    analyze_p = sub.add_parser("analyze", help="Analyze a circuit file")
    analyze_p.add_argument("file", help="Path to a compiled ACIR .json file")
    analyze_p.add_argument(
        "--format",
        "-f",
        default="text",
        choices=["text", "json"],
        help="Output format (default: text)",
    )

    # ── compare ──────────────────────────────────────────────────────────────
    compare_p = sub.add_parser("compare", help="Compare two circuits")
    compare_p.add_argument("file1", help="Baseline circuit")
    compare_p.add_argument("file2", help="Circuit to compare against the baseline")

    # ── batch / stats ────────────────────────────────────────────────────────
    batch_p = sub.add_parser("batch", help="Analyze all circuits in a directory")
    batch_p.add_argument("dir", help="Directory to scan recursively for .json circuits")

    stats_p = sub.add_parser("stats", help="Collect CSV statistics for a directory")
    stats_p.add_argument("dir", help="Directory to scan recursively for .json circuits")

    # ── calibrate ────────────────────────────────────────────────────────────
    calibrate_p = sub.add_parser("calibrate", help="Calibrate the cost model")
    calibrate_p.add_argument("--dir", "-d", required=True, help="Directory of example circuits")
    calibrate_p.add_argument(
        "--reset", "-r", action="store_true", help="Delete the cost database before calibrating"
    )

    # ── config / help ────────────────────────────────────────────────────────
    sub.add_parser("config", help="Show current configuration")
    sub.add_parser("help", help="Show the usage guide")

    return parser


# ── Analyze command ──────────────────────────────────────────────────────────


def _print_core_metrics(analysis: CircuitAnalysis, file: str) -> None:
    print(f"\n{_BOLD}Circuit Analysis:{_RESET} {_c(file, _CYAN)}")
    rows = [
        ("Total Constraints", _c(str(analysis.constraints), _YELLOW + _BOLD)),
        ("Total ACIR Opcodes", _c(str(analysis.total_opcodes), _CYAN)),
        ("Public Inputs", str(analysis.public_inputs)),
        ("Private Inputs", str(analysis.private_inputs)),
        (
            "Input/Output Count",
            f"{analysis.public_inputs + analysis.private_inputs} in / {analysis.return_values} out",
        ),
        ("Est. Proving Time", _format_proving_time(analysis.estimated_proving_time)),
    ]
    if analysis.constraints > 0:
        rows.append(("Proving Efficiency", f"{analysis.proving_efficiency_us:.3f} μs/constraint"))
    rows.append(("Confidence", f"{analysis.confidence * 100:.1f}%"))

    for label, value in rows:
        print(f"  {_DIM}{label:<20}{_RESET} {value}")


def _format_proving_time(ms: float) -> str:
    if ms < 1.0:
        return _c(f"{ms:.2f}ms", _GREEN)
    if ms < 100.0:
        return _c(f"{ms:.2f}ms", _YELLOW)
    if ms < 1000.0:
        return _c(f"{ms:.2f}ms", _RED)
    return _c(f"{ms / 1000.0:.2f}s", _RED + _BOLD)


def _print_function_analysis(analysis: CircuitAnalysis) -> None:
    if not analysis.black_box_functions:
        return

    print(f"\n{_BOLD}External Operations:{_RESET}")
    print(f"  {'Operation':<22} {'Calls':>8} {'Constraints':>12} {'% Circuit':>10}")
    for name, count, cost in analysis.black_box_functions:
        total = count * cost
        percent = total / analysis.constraints * 100.0 if analysis.constraints else 0.0
        pct = _c(f"{percent:>9.1f}%", _pct_color(percent, high=20.0, mid=10.0))
        print(f"  {_c(f'{name:<22}', _CYAN)} {count:>8} {total:>12} {pct}")

    if analysis.constraints:
        share = analysis.external_constraints / analysis.constraints * 100.0
        print(f"\n  {_DIM}External operations account for {share:.1f}% of total constraints{_RESET}")


def _print_structure_analysis(analysis: CircuitAnalysis) -> None:
    if not analysis.operation_counts:
        return

    print(f"\n{_BOLD}Circuit Structure:{_RESET}")
    print(f"  {'Operation Type':<22} {'Count':>8} {'% of Opcodes':>13}")
    for op_type, count in analysis.operation_counts[:8]:
        percent = count / analysis.total_opcodes * 100.0 if analysis.total_opcodes else 0.0
        pct = _c(f"{percent:>12.1f}%", _pct_color(percent))
        print(f"  {_c(f'{op_type:<22}', _CYAN)} {count:>8} {pct}")

    if analysis.bottlenecks:
        print(f"\n{_c('Performance bottlenecks:', _RED + _BOLD)}")
        for category, cost in analysis.bottlenecks:
            print(f"  {category} - {cost} constraints")


def _print_constraint_details(analysis: CircuitAnalysis) -> None:
    print(f"\n{_BOLD}Constraint Distribution:{_RESET}")
    if analysis.constraints == 0:
        print("  No constraints detected in circuit.")
        return

    for category, value in ReportGenerator.constraint_breakdown(analysis).items():
        percent = value / analysis.constraints * 100.0
        pct = _c(f"{percent:>6.1f}%", _pct_color(percent))
        print(f"  {_c(f'{category:<22}', _CYAN)} {value:>12} {pct}")


def _run_analyze(args: argparse.Namespace) -> int:
    start = time.monotonic()
    analysis = CircuitAnalyzer().analyze(args.file)
    elapsed = time.monotonic() - start

    if args.format == "json":
        print(ReportGenerator().generate_json(analysis))
        return 0

    if not args.quiet:
        print(f"{_c('OK', _GREEN + _BOLD)} Analyzed in {elapsed * 1000:.2f}ms")
    _print_core_metrics(analysis, args.file)
    _print_function_analysis(analysis)
    _print_structure_analysis(analysis)
    _print_constraint_details(analysis)
    if not args.quiet:
        print(f"\n  {_DIM}Proving time estimates vary by hardware configuration{_RESET}")
    return 0


# ── Compare command ──────────────────────────────────────────────────────────


def _print_function_comparison(first: CircuitAnalysis, second: CircuitAnalysis) -> None:
    names = list(dict.fromkeys(
        [name for name, _, _ in first.black_box_functions]
        + [name for name, _, _ in second.black_box_functions]
    ))
    print(f"\n{_BOLD}External Operations Comparison:{_RESET}")
    print(f"  {'Operation':<22} {'Circuit 1':>10} {'Circuit 2':>10}  Diff")
    for name in names:
        count1 = first.black_box_calls(name)
        count2 = second.black_box_calls(name)
        print(f"  {_c(f'{name:<22}', _CYAN)} {count1:>10} {count2:>10}  {_signed(count2 - count1)}")


def _run_compare(args: argparse.Namespace) -> int:
    settings = get_settings()
    first, second = compare_circuits(args.file1, args.file2)

    _print_core_metrics(first, args.file1)
    _print_core_metrics(second, args.file2)

    delta = second.constraints - first.constraints
    time_delta = second.estimated_proving_time - first.estimated_proving_time
    print(f"\n{_BOLD}Circuit Size Difference:{_RESET} {_signed(delta)} constraints")
    print(f"{_BOLD}Proving Time Impact:{_RESET} {_signed(time_delta, '.2f')} ms")
    print(f"\n{_BOLD}Proving Efficiency:{_RESET}")
    print(f"  Circuit 1: {first.proving_efficiency_us:.3f} μs per constraint")
    print(f"  Circuit 2: {second.proving_efficiency_us:.3f} μs per constraint")

    if abs(delta) > settings.attribution_min_delta:
        matches = attribute_delta(
            delta,
            get_cost_database(),
            tolerance_percent=settings.attribution_tolerance_percent,
            limit=settings.attribution_top_n,
        )
        if matches:
            print(f"\n{_BOLD}Potential Operations Detected:{_RESET}")
            for match in matches:
                print(
                    f"  Circuit difference {match_quality(match, delta)} "
                    f"{_c(match.name, _CYAN + _BOLD)} ({match.cost} constraints, "
                    f"{match.confidence * 100:.1f}% confidence)"
                )
            if not args.quiet:
                print(
                    f"  {_DIM}Actual operation costs may vary based on circuit "
                    f"architecture and proving system{_RESET}"
                )

    if first.black_box_functions or second.black_box_functions:
        _print_function_comparison(first, second)
    return 0


# ── Batch / stats commands ───────────────────────────────────────────────────


def _print_batch_table(results: list[BatchItem]) -> None:
    print(f"\n{_BOLD}Batch Analysis Results:{_RESET}")
    print(f"  {'Circuit':<30} {'Constraints':>12} {'Opcodes':>10} {'Constraint/Opcode':>18}")
    total = 0
    successful = 0
    for item in results:
        if item.ok and item.analysis is not None:
            a = item.analysis
            total += a.constraints
            successful += 1
            ratio = _c(f"{a.constraints_per_opcode:>17.1f}x", _GREEN)
            print(f"  {_c(f'{item.name:<30}', _CYAN)} {a.constraints:>12} {a.total_opcodes:>10} {ratio}")
        else:
            error_cell = _c(f"{'ERROR':>12}", _RED)
            print(f"  {item.name:<30} {error_cell} {'-':>10}  {_c(str(item.error), _RED)}")

    avg = total // successful if successful else 0
    print(f"\nTotal: {len(results)} circuits, {total} constraints (avg: {avg})")


def _run_batch(args: argparse.Namespace) -> int:
    results = batch_analyze(args.dir)
    _print_batch_table(results)
    return 0


def _run_stats(args: argparse.Namespace) -> int:
    settings = get_settings()
    reporter = ReportGenerator()
    results = batch_analyze(args.dir)

    print("# NOIR PROFILER STATISTICS DATA - CSV FORMAT")
    print(f"# Generated on {time.strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"# Directory: {args.dir}")
    print()
    print(reporter.stats_header())
    for item in results:
        if not item.ok or item.analysis is None:
            continue
        print(reporter.stats_row(item.name, item.analysis))
        reporter.write_circuit_stats(item.name, item.analysis, settings.stats_dir)
    print()
    print("# Statistics collection complete")
    return 0


# ── Calibrate command ────────────────────────────────────────────────────────


def _print_cost_database() -> None:
    snapshot = get_cost_database().snapshot()
    print(f"\n{_BOLD}Cost Model Database:{_RESET}")
    print(f"  {'Operation':<22} {'Avg. Cost':>10} {'Recent Sample':>22} {'Confidence':>11} {'Samples':>8}")
    for name, entry in snapshot.costs.items():
        recent = variability(entry.cost)
        drift = (recent - entry.cost) / entry.cost * 100.0 if entry.cost else 0.0
        recent_display = f"{recent} ({drift:+.1f}%)"
        if entry.confidence > 0.9:
            conf_color = _GREEN + _BOLD
        elif entry.confidence > 0.85:
            conf_color = _YELLOW
        else:
            conf_color = _RED
        conf = _c(f"{entry.confidence * 100:>10.1f}%", conf_color)
        print(
            f"  {_c(f'{name:<22}', _CYAN)} {_c(f'{entry.cost:>10}', _YELLOW)} "
            f"{recent_display:>22} {conf} {entry.samples:>8}"
        )
    if snapshot.last_updated:
        print(f"\nLast calibration: {snapshot.last_updated}")
    print(f"{_DIM}Costs may vary by ±5% between proving runs due to system factors{_RESET}")


def _run_calibrate(args: argparse.Namespace) -> int:
    if args.reset:
        reset_cost_database()
        print(_c("✓ Reset cost database to defaults", _GREEN))

    print(f"Calibrating cost models using circuits in: {args.dir}")
    results = batch_analyze(args.dir)
    successful = sum(1 for item in results if item.ok)
    print(f"\n{_c('✓', _GREEN + _BOLD)} Cost model calibration complete")
    print(f"Processed {len(results)} circuits ({successful} successful)")
    _print_cost_database()
    return 0


# ── Config / help commands ───────────────────────────────────────────────────


def _run_config() -> int:
    """Print current settings."""
    s = get_settings()
    print(f"\n{_BOLD}noirprof Configuration{_RESET}\n")
    for field_name in sorted(type(s).model_fields.keys()):
        print(f"  {_DIM}{field_name}:{_RESET}  {getattr(s, field_name, '')}")
    print()
    return 0


def _run_help() -> int:
    print(f"\n{_BOLD}Noir Circuit Analysis Guide{_RESET}")
    print(f"\n{_BOLD}Creating test circuits:{_RESET}")
    print("  1. Write a simple Noir program")
    print("  2. Compile with 'nargo compile'")
    print("  3. Analyze the generated ACIR file with this tool")
    print(f"\n{_BOLD}Examples:{_RESET}")
    print("  Analyze:    noirprof analyze target/main.json")
    print("  Compare:    noirprof compare circuit1.json circuit2.json")
    print("  Research:   noirprof stats circuits_dir > research_data.csv")
    print("  Export:     noirprof analyze circuit.json --format json > analysis.json")
    print("  Calibrate:  noirprof calibrate --dir example_circuits")
    return 0


# ── Entrypoint ───────────────────────────────────────────────────────────────

_COMMANDS = {
    "analyze": _run_analyze,
    "compare": _run_compare,
    "batch": _run_batch,
    "stats": _run_stats,
    "calibrate": _run_calibrate,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"noirprof {__version__}")
        return 0

    settings = get_settings()
    setup_logging(settings.app_env, settings.log_level)

    machine_output = args.command == "stats" or getattr(args, "format", "text") == "json"
    if not args.no_banner and not machine_output:
        print(BANNER, file=sys.stderr)

    if not args.command:
        print(_c("Error: no command specified.", _RED), file=sys.stderr)
        parser.print_help(sys.stderr)
        return 1

    if args.command == "config":
        return _run_config()

    if args.command == "help":
        return _run_help()

    try:
        return _COMMANDS[args.command](args)
    except ProfilerError as exc:
        print(_c(f"Error: {exc}", _RED), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
