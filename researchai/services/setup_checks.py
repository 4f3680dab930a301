"""Setup verification checks for a ResearchAI checkout.

Each check returns a CheckResult instead of printing, so the setup scripts can
decide the exit status from data and tests can inspect outcomes. Checks that
touch the outside world (pip, npm, Redis, the database) take their client or
runner as a parameter.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum
from importlib import metadata
from pathlib import Path
from typing import Callable, Iterable, Sequence

import redis
from dotenv import dotenv_values
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from researchai.db.session import _to_sync_uri

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]

GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
RED = "\033[0;31m"
NC = "\033[0m"


class CheckStatus(str, Enum):
    OK = "ok"
    WARN = "warn"
    FAIL = "fail"


@dataclass
class CheckResult:
    name: str
    status: CheckStatus
    detail: str
    hints: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is CheckStatus.OK


_MARKERS = {
    CheckStatus.OK: ("✅", GREEN),
    CheckStatus.WARN: ("⚠️ ", YELLOW),
    CheckStatus.FAIL: ("❌", RED),
}


def render_result(result: CheckResult, *, color: bool = True) -> str:
    marker, tint = _MARKERS[result.status]
    line = f"{marker} {result.detail}"
    if color:
        line = f"{tint}{line}{NC}"
    lines = [line]
    lines.extend(f"   {hint}" for hint in result.hints)
    return "\n".join(lines)


def print_results(results: Iterable[CheckResult], *, color: bool | None = None, out: Callable[[str], None] = print) -> None:
    if color is None:
        color = sys.stdout.isatty()
    for result in results:
        out(render_result(result, color=color))


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

def distribution_version(name: str) -> str | None:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return None


def check_python_distribution(
    name: str,
    *,
    install_hint: str,
    lookup: Callable[[str], str | None] = distribution_version,
) -> CheckResult:
    version = lookup(name)
    if version is None:
        return CheckResult(name, CheckStatus.FAIL, f"{name} NOT installed", [f"Run: {install_hint}"])
    return CheckResult(name, CheckStatus.OK, f"{name} {version} installed")


def pip_install(requirement: str, *, runner: Runner = subprocess.run) -> bool:
    cmd = [sys.executable, "-m", "pip", "install", requirement]
    logger.info("Installing %s", requirement)
    try:
        completed = runner(cmd, capture_output=True, text=True, check=False)
    except OSError:
        logger.exception("Could not launch pip for %s", requirement)
        return False

    if completed.returncode != 0:
        logger.error("pip install %s failed: %s", requirement, (completed.stderr or "").strip()[-2000:])
        return False
    return True


def node_package_installed(frontend_dir: Path, package: str) -> bool:
    return (frontend_dir / "node_modules" / package / "package.json").is_file()


def ensure_node_package(
    frontend_dir: Path,
    package: str,
    version: str,
    *,
    runner: Runner = subprocess.run,
    which: Callable[[str], str | None] = shutil.which,
) -> CheckResult:
    if node_package_installed(frontend_dir, package):
        return CheckResult(package, CheckStatus.OK, f"{package} installed")

    if not frontend_dir.is_dir():
        return CheckResult(
            package,
            CheckStatus.WARN,
            f"{package} missing and {frontend_dir} not found",
        )

    npm = which("npm")
    if npm is None:
        return CheckResult(
            package,
            CheckStatus.WARN,
            f"{package} missing and npm is not available",
            [f"Run: cd {frontend_dir} && npm install {package}@{version}"],
        )

    try:
        completed = runner([npm, "install", f"{package}@{version}"], cwd=frontend_dir, check=False)
    except OSError:
        logger.debug("npm install %s failed to launch", package, exc_info=True)
        completed = None

    if completed is not None and completed.returncode == 0:
        return CheckResult(package, CheckStatus.OK, f"{package} missing - installed {package}@{version}")
    return CheckResult(
        package,
        CheckStatus.WARN,
        f"{package} missing - install failed",
        [f"Run: cd {frontend_dir} && npm install {package}@{version}"],
    )


# ---------------------------------------------------------------------------
# Environment files
# ---------------------------------------------------------------------------

def read_env_file(env_path: Path) -> dict[str, str] | None:
    """Parse *env_path*, or return None when it is missing or unreadable.

    Files that are not valid UTF-8 are re-read as Latin-1 so a stray byte in
    one value does not hide the remaining keys.
    """
    if not env_path.is_file():
        return None
    try:
        try:
            values = dotenv_values(env_path)
        except UnicodeDecodeError as exc:
            logger.debug("%s is not UTF-8 (%s); re-reading as latin-1", env_path, exc)
            values = dotenv_values(env_path, encoding="latin-1")
    except OSError as exc:
        logger.debug("Could not read %s: %s", env_path, exc)
        return None
    return {k: v for k, v in values.items() if v is not None}


def check_env_keys(env_path: Path, keys: Sequence[str]) -> list[CheckResult]:
    values = read_env_file(env_path)
    if values is None:
        return [
            CheckResult(
                env_path.name,
                CheckStatus.FAIL,
                f".env file not found or unreadable in {env_path.parent.name}/",
            )
        ]

    results = []
    for key in keys:
        if values.get(key, "").strip():
            results.append(CheckResult(key, CheckStatus.OK, f"{key} configured"))
        else:
            results.append(CheckResult(key, CheckStatus.WARN, f"{key} missing in .env"))
    return results


def check_env_prefix(env_path: Path, key: str, prefix: str, *, hints: Sequence[str] = ()) -> CheckResult:
    values = read_env_file(env_path) or {}
    if values.get(key, "").startswith(prefix):
        return CheckResult(key, CheckStatus.OK, f"{key} found in .env")
    return CheckResult(key, CheckStatus.WARN, f"{key} not set properly", list(hints))


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def check_redis(url: str, *, client_factory: Callable[[str], "redis.Redis"] | None = None) -> CheckResult:
    factory = client_factory or (lambda u: redis.Redis.from_url(u, socket_connect_timeout=2, socket_timeout=2))
    client = None
    try:
        client = factory(url)
        client.ping()
    except (redis.RedisError, OSError, ValueError) as exc:
        logger.debug("Redis ping failed url=%s: %s", url, exc)
        return CheckResult(
            "redis",
            CheckStatus.WARN,
            "Redis is not running",
            ["Install: brew install redis (or apt-get install redis-server)", "Start: redis-server"],
        )
    finally:
        if client is not None:
            client.close()
    return CheckResult("redis", CheckStatus.OK, "Redis is running")


def check_tables(
    database_url: str | None,
    tables: Sequence[str],
    *,
    migration_hint: str,
    engine_factory: Callable[[str], Engine] | None = None,
) -> list[CheckResult]:
    if not database_url:
        return [CheckResult("database", CheckStatus.WARN, "DATABASE_URL not set - skipping database check")]

    factory = engine_factory or (lambda u: create_engine(_to_sync_uri(u), pool_pre_ping=True))
    engine = None
    try:
        engine = factory(database_url)
        inspector = inspect(engine)
        return [
            CheckResult(table, CheckStatus.OK, f"{table} table exists")
            if inspector.has_table(table)
            else CheckResult(table, CheckStatus.WARN, f"{table} table missing", [f"Run: {migration_hint}"])
            for table in tables
        ]
    except (SQLAlchemyError, ImportError, ValueError) as exc:
        logger.debug("Database inspection failed: %s", exc)
        return [
            CheckResult(
                "database",
                CheckStatus.WARN,
                "could not connect to DATABASE_URL",
                ["Check the connection string and that the database accepts connections"],
            )
        ]
    finally:
        if engine is not None:
            engine.dispose()


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

def check_files(root: Path, paths: Iterable[str]) -> list[CheckResult]:
    results = []
    for rel in paths:
        if (root / rel).is_file():
            results.append(CheckResult(rel, CheckStatus.OK, rel))
        else:
            results.append(CheckResult(rel, CheckStatus.FAIL, f"{rel} NOT FOUND"))
    return results
