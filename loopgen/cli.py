"""Command-line entry point for loopgen.

Usage::

    loopgen app my-app --template notes --loopback-version 3.x
    loopgen datasource soapds --connector soap --url http://example.com/calc.asmx
    loopgen middleware ./middleware/log --phase routes --sub-phase before
    loopgen soap --datasource soapds --binding CalculatorSoap --operation Add
    loopgen soap --datasource soapds --list
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .config import LOOPBACK_VERSIONS, GeneratorConfig
from .datasource import DataSourceGenerator, DataSourceRequest
from .errors import LoopgenError
from .middleware import MiddlewareGenerator, MiddlewareRequest
from .middleware.phases import SUB_PHASES
from .scaffolder import APP_TEMPLATES, AppGenerator, AppRequest
from .soap import SoapGenerator, SoapRequest
from .utils import (
    configure_logging,
    console,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)
from .workspace import Workspace


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loopgen",
        description="loopgen -- scaffolding generators for LoopBack applications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  loopgen app my-app --template notes\n"
            "  loopgen middleware ./middleware/log --phase my-phase --before routes\n"
            "  loopgen soap --datasource soapds --list\n"
        ),
    )
    parser.add_argument(
        "--root", "-C",
        default=None,
        help="Project root directory (default: $LOOPGEN_ROOT or the current directory)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    app = commands.add_parser("app", help="Scaffold a new LoopBack application")
    app.add_argument("name", nargs="?", default=None, help="Application name (default: directory name)")
    app.add_argument(
        "--template", "-t",
        default="api-server",
        help=f"Application template ({', '.join(APP_TEMPLATES['3.x'])})",
    )
    app.add_argument(
        "--loopback-version",
        default=None,
        help=f"LoopBack version ({', '.join(LOOPBACK_VERSIONS)})",
    )
    app.add_argument("--dir", dest="directory", default=None, help="Create the project in this sub-directory")
    app.add_argument("--no-explorer", dest="explorer", action="store_false", default=None,
                     help="Do not mount loopback-component-explorer")
    app.add_argument("--force", action="store_true", help="Overwrite an existing project")

    ds = commands.add_parser("datasource", help="Add a data source to server/datasources.json")
    ds.add_argument("name", help="Data source name")
    ds.add_argument("--connector", default="memory", help="Connector name, e.g. memory, mongodb, soap")
    ds.add_argument("--url", default=None, help="Connection or service URL")
    ds.add_argument("--wsdl", default=None, help="WSDL location for the soap connector (default: <url>?WSDL)")
    ds.add_argument("--no-remoting", dest="remoting_enabled", action="store_false",
                    help="Do not expose SOAP operations over REST")
    ds.add_argument("--setting", action="append", default=[], metavar="KEY=VALUE",
                    help="Extra connector setting; VALUE is parsed as JSON when possible")

    mw = commands.add_parser("middleware", help="Register middleware in server/middleware.json")
    mw.add_argument("name", help="Middleware source key, e.g. ./middleware/log or loopback#token")
    mw.add_argument("--phase", required=True, help="Existing or new phase name")
    mw.add_argument("--sub-phase", choices=SUB_PHASES, default=None, help="Register in phase:before or phase:after")
    anchor = mw.add_mutually_exclusive_group()
    anchor.add_argument("--before", default=None, help="Insert a new phase before this phase")
    anchor.add_argument("--after", default=None, help="Insert a new phase after this phase")
    mw.add_argument("--path", dest="paths", action="append", default=[], help="Mount path (repeatable)")
    mw.add_argument("--params", default=None, help="Middleware params as a JSON object")

    soap = commands.add_parser("soap", help="Generate models from a SOAP data source's WSDL")
    soap.add_argument("--datasource", required=True, help="Name of a soap data source")
    soap.add_argument("--service", default=None, help="WSDL service (default: first)")
    soap.add_argument("--binding", default=None, help="WSDL binding (default: first of the service)")
    soap.add_argument("--operation", dest="operations", action="append", default=[],
                      help="Operation to generate (repeatable, default: all)")
    soap.add_argument("--wsdl", default=None, help="Read the WSDL from here instead of the data source")
    soap.add_argument("--list", action="store_true", help="List services, bindings and operations and exit")

    return parser


def _parse_settings(pairs: list[str]) -> dict[str, Any]:
    settings: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise LoopgenError(f"Invalid setting: {pair}. Use KEY=VALUE")
        try:
            settings[key] = json.loads(value)
        except json.JSONDecodeError:
            settings[key] = value
    return settings


async def _run(args: argparse.Namespace, config: GeneratorConfig) -> None:
    workspace = Workspace(config)

    if args.command == "app":
        root = await AppGenerator(config).generate(
            AppRequest(
                name=args.name,
                template=args.template,
                loopback_version=args.loopback_version,
                directory=args.directory,
                explorer=args.explorer,
                force=args.force,
            )
        )
        print_success(f"Created LoopBack application in {root}")
        console.print("Next steps: [bold]npm install[/bold] then [bold]node .[/bold]")

    elif args.command == "datasource":
        generator = DataSourceGenerator(workspace)
        await generator.generate(
            DataSourceRequest(
                name=args.name,
                connector=args.connector,
                url=args.url,
                wsdl=args.wsdl,
                remoting_enabled=args.remoting_enabled,
                settings=_parse_settings(args.setting),
            )
        )
        package = generator.connector_package(args.connector)
        print_success(f"Added data source {args.name}")
        if package:
            print_warning(f"Install the connector with: npm install --save {package}")

    elif args.command == "middleware":
        await MiddlewareGenerator(workspace).generate(
            MiddlewareRequest(
                name=args.name,
                phase=args.phase,
                sub_phase=args.sub_phase,
                before=args.before,
                after=args.after,
                paths=args.paths,
                params=args.params,
            )
        )
        print_success(f"Registered middleware {args.name} in phase {args.phase}")

    elif args.command == "soap":
        generator = SoapGenerator(workspace)
        request = SoapRequest(
            datasource=args.datasource,
            service=args.service,
            binding=args.binding,
            operations=args.operations,
            wsdl=args.wsdl,
        )
        if args.list:
            document = await generator.load(request)
            rows = [
                (service.name, binding.name, ", ".join(op.name for op in binding.operations))
                for service in document.services
                for binding in document.bindings_for_service(service.name)
            ]
            print_summary_table(rows, columns=("Service", "Binding", "Operations"), title=document.location)
            return
        result = await generator.generate(request)
        print_success(
            f"Generated {len(result.operations)} operation(s) of {result.binding} as model {result.api_model}"
        )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``loopgen`` / ``python -m loopgen``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = GeneratorConfig.from_env()
        if args.root:
            config.project_root = Path(args.root)
        asyncio.run(_run(args, config))
    except LoopgenError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)
    except ValidationError as exc:
        print_error(f"Error: invalid options\n{exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
