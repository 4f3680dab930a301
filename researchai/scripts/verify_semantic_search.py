"""Verify a semantic-search setup.

Purely diagnostic: every check is advisory and the script always exits 0.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Callable

from researchai.services.setup_checks import (
    CheckResult,
    check_env_prefix,
    check_files,
    check_python_distribution,
    check_redis,
    check_tables,
    print_results,
)

logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL = "redis://localhost:6379/0"
BACKEND_DISTRIBUTIONS = ("huggingface-hub", "beautifulsoup4", "lxml")
BACKEND_FILES = (
    "backend/researchai/services/paper_scrapers.py",
    "backend/researchai/services/paper_embeddings.py",
    "backend/researchai/services/paper_queue.py",
    "backend/researchai/routers/semantic_search.py",
)
FRONTEND_FILES = ("frontend/src/pages/SemanticSearch.tsx",)
PAPERS_MIGRATION = "CREATE_SEMANTIC_PAPERS_TABLE.sql"

NEXT_STEPS = (
    "1. Get HuggingFace API Key:",
    "   Visit: https://huggingface.co/settings/tokens",
    "   Update backend/.env: HUGGINGFACE_API_KEY=hf_your_key",
    "",
    "2. Run SQL Migration:",
    "   - Open Supabase SQL Editor",
    f"   - Copy contents of {PAPERS_MIGRATION}",
    "   - Run the script",
    "",
    "3. Start Redis:",
    "   redis-server",
    "",
    "4. Start Backend:",
    "   cd backend && uvicorn researchai.main:app --reload",
    "",
    "5. Test Semantic Search:",
    "   - Open app in browser",
    "   - Go to Semantic Search page",
    "   - Enter query: 'machine learning for drug discovery'",
    "   - Click Search",
)

RULE = "=" * 50


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def run(
    root: Path,
    *,
    redis_url: str = DEFAULT_REDIS_URL,
    database_url: str | None = None,
    out: Callable[[str], None] = print,
    redis_check: Callable[[str], CheckResult] = check_redis,
    distribution_check: Callable[..., CheckResult] = check_python_distribution,
    table_check: Callable[..., list[CheckResult]] = check_tables,
) -> int:
    out("🚀 ResearchAI Semantic Search Setup Verification")
    out(RULE)
    out("")

    out("📝 Step 1: Checking HuggingFace API Key...")
    print_results(
        [
            check_env_prefix(
                root / "backend" / ".env",
                "HUGGINGFACE_API_KEY",
                "hf_",
                hints=(
                    "Get your free API key from: https://huggingface.co/settings/tokens",
                    "Then update backend/.env with: HUGGINGFACE_API_KEY=hf_your_key_here",
                ),
            )
        ],
        out=out,
    )
    out("")

    out("🔴 Step 2: Checking Redis server...")
    print_results([redis_check(redis_url)], out=out)
    out("")

    out("📦 Step 3: Checking backend dependencies...")
    print_results(
        [distribution_check(name, install_hint=f"pip install {name}") for name in BACKEND_DISTRIBUTIONS],
        out=out,
    )
    out("")

    out("📂 Step 4: Checking backend files...")
    print_results(check_files(root, BACKEND_FILES), out=out)
    out("")

    out("🎨 Step 5: Checking frontend files...")
    print_results(check_files(root, FRONTEND_FILES), out=out)
    out("")

    out("🗄️  Step 6: Checking SQL migration...")
    migration = check_files(root, (PAPERS_MIGRATION,))
    if migration[0].ok:
        migration[0].hints.append("Remember to run this in Supabase SQL Editor!")
    print_results(migration, out=out)
    if database_url:
        papers = table_check(
            database_url,
            ("papers",),
            migration_hint=f"psql $DATABASE_URL -f {PAPERS_MIGRATION}",
        )
        print_results(papers, out=out)
    out("")

    out(RULE)
    out("📋 NEXT STEPS:")
    out(RULE)
    out("")
    for line in NEXT_STEPS:
        out(line)
    out("")
    out("✨ Good luck!")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Verify the semantic search setup (advisory only).")
    parser.add_argument("--root", default=".", help="ResearchAI checkout root (default: current directory)")
    args = parser.parse_args(argv)

    _configure_logging()
    return run(
        Path(args.root).resolve(),
        redis_url=os.getenv("REDIS_URL", DEFAULT_REDIS_URL),
        database_url=os.getenv("DATABASE_URL"),
    )


if __name__ == "__main__":
    raise SystemExit(main())
