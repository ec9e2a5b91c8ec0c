"""Next.js framework detector.

Checks App Router conventions: image and font optimisation, the
server/client component boundary, metadata, caching and route handlers.
"""

import re
from collections.abc import Iterator
from pathlib import PurePosixPath

from ..models import Issue, Severity
from .base import Detector, FileContext, Rule

_USE_CLIENT = re.compile(r"""^\s*['"]use client['"]""", re.MULTILINE)
_CLIENT_ONLY = re.compile(r"\b(useState|useEffect|useReducer|useRef)\(|\bon[A-Z]\w*=\{")
_ENV_VAR = re.compile(r"process\.env\.(\w+)")
_HTTP_METHOD_EXPORT = re.compile(
    r"export\s+(async\s+)?(function|const)\s+(GET|POST|PUT|PATCH|DELETE|HEAD|OPTIONS)\b"
)


def _in_app_dir(ctx: FileContext) -> bool:
    return "app" in PurePosixPath(ctx.posix).parts


class NextJSDetector(Detector):
    """Detector for Next.js specific patterns."""

    name = "nextjs"

    def rules(self) -> list[Rule]:
        return [
            self.detect_image_optimization,
            self.detect_component_boundary,
            self.detect_missing_metadata,
            self.detect_uncached_fetch,
            self.detect_route_handlers,
            self.detect_font_loading,
            self.detect_client_env_vars,
        ]

    def detect_image_optimization(self, ctx: FileContext) -> Iterator[Issue]:
        if not ctx.is_jsx:
            return
        for i, line in enumerate(ctx.lines):
            if "<img" in line:
                yield self.issue(
                    ctx, i + 1, "Image Optimization",
                    "Using <img> tag instead of next/image",
                    Severity.WARNING,
                    "Use the Image component from next/image",
                )

    def detect_component_boundary(self, ctx: FileContext) -> Iterator[Issue]:
        if not ctx.is_jsx or not _in_app_dir(ctx) or ctx.is_test:
            return
        is_client = bool(_USE_CLIENT.search(ctx.content))
        uses_client_features = bool(_CLIENT_ONLY.search(ctx.content))

        if is_client and not uses_client_features:
            yield self.issue(
                ctx, 1, "Server Components",
                "Component uses 'use client' but has no interactivity",
                Severity.INFO,
                "Remove 'use client' to render on the server",
            )
        if not is_client and uses_client_features:
            yield self.issue(
                ctx, 1, "Server Components",
                "Server Component using client-side hooks/events",
                Severity.ERROR,
                "Add 'use client' or move interactivity into a client component",
            )

    def detect_missing_metadata(self, ctx: FileContext) -> Iterator[Issue]:
        if not _in_app_dir(ctx) or ctx.name not in ("page.tsx", "layout.tsx"):
            return
        if _USE_CLIENT.search(ctx.content):
            return
        if "export const metadata" in ctx.content or "generateMetadata" in ctx.content:
            return
        yield self.issue(
            ctx, 0, "Metadata & SEO",
            "Page/Layout missing metadata export",
            Severity.WARNING,
            "Export a metadata object or generateMetadata function",
        )

    def detect_uncached_fetch(self, ctx: FileContext) -> Iterator[Issue]:
        if not _in_app_dir(ctx) or _USE_CLIENT.search(ctx.content):
            return
        for i, line in enumerate(ctx.lines):
            if "fetch(" not in line:
                continue
            call = " ".join(ctx.lines[i:i + 3])
            if "cache:" not in call and "revalidate" not in call:
                yield self.issue(
                    ctx, i + 1, "Caching",
                    "fetch() call without explicit cache configuration",
                    Severity.INFO,
                    "Pass { cache } or { next: { revalidate } } to fetch",
                )

    def detect_route_handlers(self, ctx: FileContext) -> Iterator[Issue]:
        if not _in_app_dir(ctx) or PurePosixPath(ctx.posix).stem != "route":
            return
        if not _HTTP_METHOD_EXPORT.search(ctx.content):
            yield self.issue(
                ctx, 0, "Route Handlers",
                "Route handler missing exported HTTP method functions",
                Severity.ERROR,
                "Export GET, POST or another HTTP method handler",
            )

    def detect_font_loading(self, ctx: FileContext) -> Iterator[Issue]:
        for i, line in enumerate(ctx.lines):
            if "fonts.googleapis.com" in line:
                yield self.issue(
                    ctx, i + 1, "Font Optimization",
                    "Using manual Google Fonts import",
                    Severity.WARNING,
                    "Use next/font/google for automatic optimisation",
                )

    def detect_client_env_vars(self, ctx: FileContext) -> Iterator[Issue]:
        if not _USE_CLIENT.search(ctx.content):
            return
        for i, line in enumerate(ctx.lines):
            for name in _ENV_VAR.findall(line):
                if not name.startswith("NEXT_PUBLIC_") and name != "NODE_ENV":
                    yield self.issue(
                        ctx, i + 1, "Runtime Config",
                        "Using non-public env var in Client Component",
                        Severity.ERROR,
                        "Prefix with NEXT_PUBLIC_ or read it on the server",
                    )
