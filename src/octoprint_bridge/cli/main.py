"""Main entry point for the CLI."""

import sys
import typing

import cyclopts

from octoprint_bridge import __version__
from octoprint_bridge.cli import common
from octoprint_bridge.cli.commands import bridge, config

# Define the App
app = cyclopts.App(
    name="octobridge",
    help="Mirror an OctoPrint server into a state tree",
    version=__version__,
    version_flags=["--version"],
    help_flags=["--help"],
)

app.command(bridge.run_command, name="run")
app.command(bridge.snapshot_command, name="snapshot")
app.command(bridge.send_command, name="send")
app.command(config.config_command, name="config")


@app.meta.default
def entry_point(
    tokens: typing.Annotated[list[str] | None, cyclopts.Parameter(show=False, allow_leading_hyphen=True)] = None,
    verbose: typing.Annotated[
        bool, cyclopts.Parameter(name=["--verbose", "-v"], help="Enable verbose logging")
    ] = False,
    debug: typing.Annotated[bool, cyclopts.Parameter(name=["--debug"], help="Enable debug logging")] = False,
    output_format: typing.Annotated[
        str | None, cyclopts.Parameter(name=["--format"], help="Output format: rich, plain or json")
    ] = None,
):
    """Main entry point handling global flags."""
    common.configure_logging(verbose, debug)
    common.set_output_format(output_format)

    if tokens is None:
        tokens = []
    try:
        app(tokens)
    except cyclopts.exceptions.CycloptsError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def main(args: list[str] | None = None):
    """Main entry point."""
    if args is None:
        args = sys.argv[1:]

    try:
        app.meta(args)
    except cyclopts.exceptions.CycloptsError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        from octoprint_bridge import exceptions

        if isinstance(e, exceptions.PrinterApiError):
            print(f"API Error: {e}", file=sys.stderr)
            if e.response_body:
                print(f"Details: {e.response_body}", file=sys.stderr)
        elif isinstance(e, exceptions.PrinterNetworkError):
            print(f"Network Error: {e}", file=sys.stderr)
        else:
            print(f"Unexpected Error: {e}", file=sys.stderr)
            common.logger.exception("An unexpected error occurred")
        sys.exit(1)


if __name__ == "__main__":
    main()
