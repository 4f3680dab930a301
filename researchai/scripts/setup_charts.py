"""Set up chart generation and verify its prerequisites.

Installs the server-side chart renderer when it is missing, then reports on the
frontend chart packages, the chart/humanizer tables and the backend API keys.
Only a failed renderer install changes the exit status; every other finding is
advisory.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Callable

from researchai.services.setup_checks import (
    CheckResult,
    CheckStatus,
    check_env_keys,
    check_tables,
    distribution_version,
    ensure_node_package,
    pip_install,
    print_results,
)

logger = logging.getLogger(__name__)

CHART_RENDERER = "matplotlib"
CHART_RENDERER_REQUIREMENT = "matplotlib>=3.8"
CHART_RENDERER_SYSTEM_HINT = (
    "Try: sudo apt-get install build-essential libfreetype6-dev libpng-dev pkg-config"
)

FRONTEND_PACKAGES = (
    ("recharts", "3.2.0"),
    ("react-force-graph", "1.48.1"),
)
CHART_TABLES = ("chart_exports", "humanizer_logs")
REQUIRED_ENV_KEYS = ("CEREBRAS_API_KEY", "GEMINI_API_KEY", "SUPABASE_URL")

CHECKLIST = (
    "1. Start backend: cd backend && uvicorn researchai.main:app --reload",
    "2. Start frontend: cd frontend && npm run dev",
    "3. Navigate to workspace -> Visual Analytics tab",
    "4. Click 'Citation Trend' button",
    "5. Check job status updates",
    "6. Verify chart appears in results",
)


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def ensure_chart_renderer(
    *,
    lookup: Callable[[str], str | None] = distribution_version,
    installer: Callable[[str], bool] = pip_install,
) -> CheckResult:
    version = lookup(CHART_RENDERER)
    if version is not None:
        return CheckResult(CHART_RENDERER, CheckStatus.OK, f"{CHART_RENDERER} {version} already installed")

    if installer(CHART_RENDERER_REQUIREMENT):
        return CheckResult(CHART_RENDERER, CheckStatus.OK, f"{CHART_RENDERER} installed successfully")

    return CheckResult(
        CHART_RENDERER,
        CheckStatus.FAIL,
        f"Failed to install {CHART_RENDERER}",
        [CHART_RENDERER_SYSTEM_HINT],
    )


def run(
    root: Path,
    *,
    database_url: str | None = None,
    out: Callable[[str], None] = print,
    renderer_check: Callable[[], CheckResult] = ensure_chart_renderer,
    node_check: Callable[..., CheckResult] = ensure_node_package,
    table_check: Callable[..., list[CheckResult]] = check_tables,
) -> int:
    out("🎨 Setting up Chart Generation & Network Analysis...")

    out(f"📦 Ensuring {CHART_RENDERER} is installed...")
    renderer = renderer_check()
    print_results([renderer], out=out)
    if renderer.status is CheckStatus.FAIL:
        return 1

    out("🔍 Verifying frontend packages...")
    frontend_dir = root / "frontend"
    print_results([node_check(frontend_dir, pkg, version) for pkg, version in FRONTEND_PACKAGES], out=out)

    out("🗄️ Checking database tables...")
    print_results(
        table_check(
            database_url,
            CHART_TABLES,
            migration_hint="alembic upgrade head",
        ),
        out=out,
    )

    out("🔑 Checking environment variables...")
    print_results(check_env_keys(root / "backend" / ".env", REQUIRED_ENV_KEYS), out=out)

    out("")
    out("🎉 Setup complete! Chart generation features are ready.")
    out("")
    out("📋 Quick Test Checklist:")
    for step in CHECKLIST:
        out(step)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Install and verify chart generation prerequisites.")
    parser.add_argument("--root", default=".", help="ResearchAI checkout root (default: current directory)")
    args = parser.parse_args(argv)

    _configure_logging()
    return run(Path(args.root).resolve(), database_url=os.getenv("DATABASE_URL"))


if __name__ == "__main__":
    raise SystemExit(main())
