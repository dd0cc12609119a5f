import argparse
import dataclasses
import sys

from reviewflow.core.config import OrgConfigLoader
from reviewflow.core.utils.logging_filters import configure_logging
from reviewflow.settings import Settings


def check_config(path: str) -> int:
    errors = OrgConfigLoader.validate_file(path)
    if errors:
        print(f"{path}: {len(errors)} error(s)")
        for error in errors:
            print(f"  - {error}")
        return 1
    configs = OrgConfigLoader.load(path)
    print(f"{path}: OK ({', '.join(sorted(configs))})")
    return 0


def serve(settings: Settings) -> int:
    from reviewflow.runtime import ReviewflowRuntime, slack_token_for
    from reviewflow.server import serve as run_server

    configs = OrgConfigLoader.load(settings.config_path)
    slack_tokens = [token for token in (slack_token_for(config) for config in configs.values()) if token]
    configure_logging(settings.log_level, settings.logs_dir, settings.secrets() + slack_tokens)

    runtime = ReviewflowRuntime.build(settings, configs)
    run_server(runtime, settings.webhook_port)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reviewflow - review labels and Slack notifications for GitHub PRs")
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the webhook server")
    serve_parser.add_argument("--port", type=int, help="Port to listen on (default: WEBHOOK_PORT or 3000)")
    serve_parser.add_argument("--config", help="Configuration file (default: REVIEWFLOW_CONFIG or reviewflow.yml)")

    check_parser = subparsers.add_parser("check-config", help="Validate a configuration file")
    check_parser.add_argument("file", help="YAML configuration file")

    args = parser.parse_args(argv)

    if args.command == "check-config":
        return check_config(args.file)
    if args.command == "serve":
        settings = Settings.from_env()
        overrides = {}
        if args.port:
            overrides["webhook_port"] = args.port
        if args.config:
            overrides["config_path"] = args.config
        return serve(dataclasses.replace(settings, **overrides))

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
