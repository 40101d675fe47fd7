"""CLI entrypoint for the storemap customer-data pipeline."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from storemap.client.filters import FilterState, apply_filters
from storemap.common.config_loader import ConfigBundle, load_all_configs, load_dotenv_files
from storemap.common.constants import COMMANDS, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from storemap.common.errors import StoremapError
from storemap.common.fs import read_json, write_json
from storemap.common.http import build_http_client
from storemap.common.ids import generate_run_id
from storemap.common.logging import build_logger, log_event
from storemap.common.models import CustomerRecord
from storemap.completion.client import request_completion
from storemap.completion.prompt import FilterContext, build_summary_prompt
from storemap.harvest.bitable_harvest import fetch_all_records
from storemap.pipeline.aggregate import summarize
from storemap.pipeline.driver import build_customer_payload, run_transformation
from storemap.pipeline.export import write_customer_exports
from storemap.pipeline.reports import write_summary_report, write_transform_report


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--debug", action="store_true", help="attach rejection diagnostics to the export")
    parser.add_argument("--input", default=None, help="customers JSON for summarize (default: <data-dir>/out/customers.json)")
    parser.add_argument("--search", default="")
    parser.add_argument("--region", action="append", default=[])
    parser.add_argument("--brand", action="append", default=[])
    parser.add_argument("--ai", action="store_true", help="also request a completion summary")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def run_fetch(bundle: ConfigBundle, data_dir: Path, run_id: str, *, debug: bool, logger: logging.Logger) -> int:
    with build_http_client(bundle.app) as client:
        raw_records = fetch_all_records(client, bundle.credentials, bundle.app["bitable"], logger=logger)

    debug = debug or bundle.credentials.debug_transform
    result = run_transformation(raw_records, bundle.app, debug=debug, logger=logger)
    payload = build_customer_payload(result, debug=debug)
    write_customer_exports(data_dir, payload, result.accepted)
    write_transform_report(data_dir, run_id, result)
    return EXIT_PARTIAL if result.rejected else EXIT_SUCCESS


def run_summarize(bundle: ConfigBundle, args: argparse.Namespace, data_dir: Path, run_id: str, logger: logging.Logger) -> int:
    input_path = Path(args.input) if args.input else data_dir / "out" / "customers.json"
    payload = read_json(input_path)
    unknown_label = bundle.unknown_label
    records = [CustomerRecord.from_dict(item, unknown_label=unknown_label) for item in payload.get("customers", [])]

    state = FilterState(
        search_query=args.search,
        region_filter=frozenset(args.region),
        brand_filter=frozenset(args.brand),
    )
    visible = apply_filters(records, state, brand_delimiters=bundle.app["filters"]["brand_delimiters"])
    completion_cfg = bundle.app["completion"]
    summary = summarize(visible, unknown_label=unknown_label, sample_limit=int(completion_cfg.get("discount_samples", 5)))

    ai_text = None
    if args.ai:
        context = FilterContext(search_query=args.search.strip(), regions=tuple(args.region), brands=tuple(args.brand))
        prompt = build_summary_prompt(summary, context, top_products=int(completion_cfg.get("top_products", 5)))
        with build_http_client(bundle.app) as client:
            ai_text = request_completion(client, bundle.credentials, completion_cfg, prompt, logger=logger)

    filters = {"searchQuery": args.search, "regionFilter": sorted(args.region), "brandFilter": sorted(args.brand)}
    write_summary_report(data_dir, run_id, summary, filters, ai_text)
    return EXIT_SUCCESS


def run_serve(bundle: ConfigBundle, args: argparse.Namespace) -> int:
    import uvicorn

    from storemap.api.app import create_app

    uvicorn.run(create_app(bundle.app), host=args.host, port=args.port)
    return EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    load_dotenv_files(Path.cwd())
    bundle = load_all_configs(config_dir, overlay_config_dir=overlay_config_dir)

    log_event(logger, "command start", run_id=run_id, stage=args.command, event="STAGE_START", status="ok")
    try:
        if args.command == "fetch":
            exit_code = run_fetch(bundle, data_dir, run_id, debug=args.debug, logger=logger)
        elif args.command == "summarize":
            exit_code = run_summarize(bundle, args, data_dir, run_id, logger)
        elif args.command == "serve":
            exit_code = run_serve(bundle, args)
        else:
            raise ValueError(f"Unknown command: {args.command}")
    except StoremapError as exc:
        log_event(
            logger,
            f"{args.command} failed: {exc}",
            level=logging.ERROR,
            run_id=run_id,
            stage=args.command,
            event="STAGE_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        write_json(data_dir / "run_meta" / f"{run_id}.error.json", {"error": str(exc), "error_code": exc.error_code})
        return EXIT_HARD_FAIL

    log_event(logger, "command end", run_id=run_id, stage=args.command, event="STAGE_END", status="ok")
    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except StoremapError:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
