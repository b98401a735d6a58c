"""CLI entry point for the Device Fleet Simulator.

Usage::

    fleet-simulator run --config simulator.yaml
    fleet-simulator run --devices 20 -t TEMPERATURE -t HUMIDITY --target-url http://localhost:8080/api/sensor
    fleet-simulator list-sensor-kinds
    fleet-simulator init-config --output simulator.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap

# ---------------------------------------------------------------------------
# Sample YAML config template for init-config
# ---------------------------------------------------------------------------
_SAMPLE_CONFIG = """\
# Device Fleet Simulator configuration

simulator:
  deviceCount: 10                               # number of simulated devices
  sensorTypes: [TEMPERATURE, HUMIDITY, MOTION]  # run 'fleet-simulator list-sensor-kinds'
  targetUrl: http://localhost:8080/api/sensor   # readings are POSTed here
  websocketUrl: ws://localhost:8080/ws-sensor-data
  # deviceRegistrationUrl: http://localhost:8080/api/device   # default: targetUrl with /device
  dataPushIntervalMs: 5000                      # scheduler tick period

  # Per-tick, per-device probabilities
  # disconnect_probability: 0.1
  # reconnect_probability: 0.5
  # anomaly_probability: 0.05

  # Bootstrap retry policies
  # readiness_max_attempts: 20
  # readiness_delay_s: 0.5
  # registration_max_attempts: 5
  # registration_delay_s: 0.4

  # Streaming channel
  # stream_destination: /app/sensorData
  # stream_connect_attempts: 5
  # stream_retry_delay_s: 1.0

  # random_seed: 42                             # reproducible runs
  # duration_s: 60                              # optional: auto-stop after N seconds
  # log_level: INFO                             # DEBUG, INFO, WARNING, ERROR
"""


# ======================================================================
# Main entry point
# ======================================================================


def main(argv: list[str] | None = None) -> None:
    epilog = textwrap.dedent("""\
        examples:
          fleet-simulator run --config simulator.yaml
          fleet-simulator run --devices 5 -t TEMPERATURE --target-url http://localhost:8080/api/sensor
          fleet-simulator list-sensor-kinds
          fleet-simulator init-config --output simulator.yaml
    """)

    parser = argparse.ArgumentParser(
        prog="fleet-simulator",
        description="Emulate a fleet of IoT devices against a telemetry-ingestion service.",
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", title="commands")

    # -- run ---------------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        help="Bootstrap the fleet and push readings until stopped.",
    )
    run_parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML config file. Flags given on the command line override it.",
    )
    run_parser.add_argument("--devices", "-n", type=int, default=None, help="Number of simulated devices.")
    run_parser.add_argument(
        "--sensor-type",
        "-t",
        action="append",
        dest="sensor_types",
        default=None,
        help="Sensor kind carried by every device (repeatable).",
    )
    run_parser.add_argument("--target-url", type=str, default=None, help="Ingestion endpoint for readings.")
    run_parser.add_argument("--websocket-url", type=str, default=None, help="Streaming endpoint.")
    run_parser.add_argument("--registration-url", type=str, default=None, help="Device registration endpoint.")
    run_parser.add_argument("--interval-ms", type=int, default=None, help="Tick period in milliseconds.")
    run_parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs.")
    run_parser.add_argument(
        "--duration",
        "-d",
        type=float,
        default=None,
        help="Run duration in seconds (default: indefinite, Ctrl-C to stop).",
    )
    run_parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO).",
    )

    # -- list-sensor-kinds -------------------------------------------------
    subparsers.add_parser(
        "list-sensor-kinds",
        help="List supported sensor kinds with their nominal ranges.",
    )

    # -- init-config -------------------------------------------------------
    init_parser = subparsers.add_parser(
        "init-config",
        help="Generate a sample YAML configuration file.",
    )
    init_parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Write config to this file instead of stdout.",
    )

    # A flag-first invocation (e.g. `fleet-simulator --config sim.yaml`)
    # is treated as `run`.
    _known_commands = {"run", "list-sensor-kinds", "init-config"}
    raw_args = argv if argv is not None else sys.argv[1:]
    if raw_args and raw_args[0] not in _known_commands and raw_args[0] not in ("-h", "--help"):
        raw_args = ["run", *list(raw_args)]

    args = parser.parse_args(raw_args)

    if args.command is None:
        parser.print_help()
        return

    # -- Dispatch ----------------------------------------------------------
    if args.command == "run":
        _cmd_run(args)
    elif args.command == "list-sensor-kinds":
        _cmd_list_sensor_kinds()
    elif args.command == "init-config":
        _cmd_init_config(args.output)
    else:
        parser.print_help()


# ======================================================================
# Command implementations
# ======================================================================


def _cmd_run(args: argparse.Namespace) -> None:
    """Build settings from config file + flags and run the fleet."""
    from fleet_simulator.controller import FleetController
    from fleet_simulator.errors import BootstrapError

    settings = _build_settings(args)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )

    duration = args.duration if args.duration is not None else settings.duration_s
    try:
        FleetController(settings).run(duration_s=duration)
    except BootstrapError as exc:
        logging.getLogger("fleet_simulator").error("Cannot start simulator: %s", exc)
        sys.exit(1)


def _build_settings(args: argparse.Namespace):
    from fleet_simulator.config import SimulatorSettings, load_yaml_config

    base = load_yaml_config(args.config) if args.config else SimulatorSettings()

    overrides = {
        "device_count": args.devices,
        "sensor_types": args.sensor_types,
        "target_url": args.target_url,
        "websocket_url": args.websocket_url,
        "device_registration_url": args.registration_url,
        "data_push_interval_ms": args.interval_ms,
        "random_seed": args.seed,
        "log_level": args.log_level,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if not overrides:
        return base
    return SimulatorSettings(**{**base.model_dump(), **overrides})


# -- list-sensor-kinds -----------------------------------------------------


def _cmd_list_sensor_kinds() -> None:
    from fleet_simulator.sensor_kinds import KIND_PROFILES

    print(f"\n{'Kind':<14} {'Unit':<8} {'Nominal min':>12} {'Nominal max':>12}")
    print("-" * 49)
    for kind, profile in KIND_PROFILES.items():
        print(f"{kind.value:<14} {profile.unit:<8} {profile.nominal_min:>12.2f} {profile.nominal_max:>12.2f}")
    print()


# -- init-config ------------------------------------------------------------


def _cmd_init_config(output_path: str | None) -> None:
    if output_path:
        from pathlib import Path

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_text(_SAMPLE_CONFIG)
        print(f"Sample config written to {output_path}")
    else:
        print(_SAMPLE_CONFIG)


# ======================================================================
if __name__ == "__main__":
    main()
