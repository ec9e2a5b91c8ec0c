import asyncio
import logging
import os
import sys
from typing import Annotated, Literal

from fastmcp import FastMCP
from pydantic import Field

from .constants import DEFAULT_SERVER_PORT
from .core.exceptions import CodeHealthError
from .core.logging_config import configure_health_logging
from .service import HealthService

# Configure logging to stderr to avoid interfering with JSON-RPC on stdout
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(name)s %(levelname)s: %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger("codehealth")


def create_server(service: HealthService | None = None) -> FastMCP:
    """Build the MCP server around *service*."""
    service = service or HealthService()
    mcp: FastMCP = FastMCP("codehealth-mcp")

    @mcp.tool
    async def run_health_check(
        path: Annotated[
            str,
            Field(description="Absolute path to the root of the JavaScript/TypeScript project"),
        ],
        auto_fix: Annotated[
            bool | None,
            Field(
                description="Apply high-confidence fixes after the check. Defaults to the project's autofix.enabled setting",
                default=None,
            ),
        ] = None,
        output_format: Annotated[
            Literal["markdown", "json"],
            Field(description="Report format"),
        ] = "markdown",
    ) -> str:
        """Run a full code health check on a project and return its 0-100 score.

        USE THIS TOOL WHEN:
        - You want an overall quality score for a JavaScript/TypeScript codebase
        - You need a prioritised list of bugs, performance and import problems
        - You want to verify that a refactoring did not lower code health

        DO NOT USE THIS TOOL FOR:
        - Continuous monitoring while editing (use start_watcher instead)
        - Only applying fixes (use apply_fixes instead)

        Each detector family contributes a capped deduction, so one noisy
        category cannot drive the score to zero on its own."""
        logger.info(f"Running health check on {path}")
        try:
            return await service.check(path, auto_fix=auto_fix, output_format=output_format)
        except CodeHealthError as e:
            logger.error(f"Health check error: {e}")
            return f"Error: {e}"

    @mcp.tool
    async def apply_fixes(
        path: Annotated[
            str,
            Field(description="Absolute path to the root of the project to fix"),
        ],
        dry_run: Annotated[
            bool,
            Field(description="Only report the fixes that would be applied, without writing files"),
        ] = True,
        min_confidence: Annotated[
            int | None,
            Field(
                description="Lowest fix confidence (0-100) that is applied. Defaults to the project's autofix.min_confidence",
                default=None,
                ge=0,
                le=100,
            ),
        ] = None,
    ) -> str:
        """Apply low-risk automatic fixes to a project.

        USE THIS TOOL WHEN:
        - The user asks to clean up issues reported by run_health_check
        - You want to preview which fixes are considered safe (dry_run=true)

        Fixes below the confidence threshold are reported as skipped and
        never written. Run with dry_run=true first."""
        logger.info(f"Applying fixes to {path} (dry_run={dry_run})")
        try:
            return await service.fix(path, dry_run=dry_run, min_confidence=min_confidence)
        except CodeHealthError as e:
            logger.error(f"Auto-fix error: {e}")
            return f"Error: {e}"

    @mcp.tool
    async def start_watcher(
        path: Annotated[
            str,
            Field(description="Absolute path to the project directory to watch"),
        ],
    ) -> str:
        """Start live health monitoring of a project.

        Runs a baseline health check, then re-checks changed files as they are
        saved. Use get_live_status to read the current score. Starting a new
        watcher replaces the active one."""
        try:
            return await service.watch_start(path)
        except CodeHealthError as e:
            logger.error(f"Watcher error: {e}")
            return f"Error: {e}"

    @mcp.tool
    async def stop_watcher() -> str:
        """Stop live health monitoring."""
        try:
            return await service.watch_stop()
        except CodeHealthError as e:
            return f"Error: {e}"

    @mcp.tool
    async def get_live_status(
        output_format: Annotated[
            Literal["markdown", "json"],
            Field(description="Status format"),
        ] = "markdown",
    ) -> str:
        """Get the live health score, trend and top issues from the active watcher."""
        try:
            return service.live_status(output_format=output_format)
        except CodeHealthError as e:
            return f"Error: {e}"

    return mcp


def main() -> None:
    """Run the MCP server with HTTP streaming transport."""
    print("CodeHealth MCP Server v0.1.0 (HTTP Streaming)", file=sys.stderr)
    print("=" * 50, file=sys.stderr)

    log_file = os.environ.get("CODEHEALTH_LOG_FILE")
    configure_health_logging(log_file=log_file, log_level=os.environ.get("CODEHEALTH_LOG_LEVEL", "INFO"))
    if log_file:
        print(f"Health events logged to {log_file}", file=sys.stderr)

    port = DEFAULT_SERVER_PORT
    print(f"Starting HTTP streaming server on port {port}...", file=sys.stderr)
    print(f"HTTP endpoint will be available at: http://localhost:{port}/mcp", file=sys.stderr)

    mcp = create_server()
    try:
        asyncio.run(mcp.run_http_async(transport="streamable-http", host="0.0.0.0", port=port))
    except KeyboardInterrupt:
        print("\nShutting down...", file=sys.stderr)
        sys.exit(0)
    except Exception as e:
        print(f"MCP server error: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
