"""db.create / db.destroy: one database per worktree."""

from typing import Dict, List, Tuple

from arbor.config.local_state import LocalState, read_local_state, write_local_state
from arbor.constants import DB_CREATE_MAX_ATTEMPTS, DB_NAME_MAX_LENGTH, DEFAULT_ENV_FILE
from arbor.exceptions import ArborError, CommandFailedError, ConfigError
from arbor.logging_config import get_logger
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.steps.base import Step
from arbor.scaffold.words import generate_suffix
from arbor.ui import console
from arbor.utils.env_file import read_env_file
from arbor.utils.paths import sanitize_site_name

logger = get_logger(__name__)

MYSQL = "mysql"
PGSQL = "pgsql"
SQLITE = "sqlite"

ENGINE_ALIASES = {
    "mysql": MYSQL,
    "mariadb": MYSQL,
    "pgsql": PGSQL,
    "postgres": PGSQL,
    "postgresql": PGSQL,
    "sqlite": SQLITE,
}

DEFAULT_PORTS = {MYSQL: "3306", PGSQL: "5432"}
DEFAULT_USERS = {MYSQL: "root", PGSQL: "postgres"}

_ALREADY_EXISTS = ("already exists", "database exists")


def build_database_name(site_name: str, suffix: str) -> str:
    """``<sanitized site>_<suffix>``, cut to the PostgreSQL identifier limit.

    Only the site part is shortened; the suffix always survives intact.
    """
    base = sanitize_site_name(site_name)
    room = DB_NAME_MAX_LENGTH - len(suffix) - 1
    base = base[:max(room, 0)].rstrip("_")
    if not base:
        return suffix[:DB_NAME_MAX_LENGTH]
    return f"{base}_{suffix}"


def resolve_engine(explicit: str, env_values: Dict[str, str]) -> str:
    """Pick the engine from the step's ``type`` or the env's DB_CONNECTION.

    Raises:
        ConfigError: If neither names a supported engine
    """
    raw = explicit or env_values.get("DB_CONNECTION", "")
    if not raw:
        raise ConfigError("cannot determine database engine: set type or DB_CONNECTION")
    engine = ENGINE_ALIASES.get(raw.lower())
    if engine is None:
        raise ConfigError(f"unsupported database engine '{raw}'")
    return engine


class _DatabaseStep(Step):
    """Shared client plumbing for the database steps."""

    def _env_values(self, ctx: ScaffoldContext) -> Dict[str, str]:
        return read_env_file(ctx.worktree_path, self.config.file or DEFAULT_ENV_FILE)

    def _client(self, engine: str, env_values: Dict[str, str], sql: str) -> Tuple[List[str], Dict[str, str]]:
        """Client command line and extra environment for running ``sql``."""
        user = env_values.get("DB_USERNAME") or DEFAULT_USERS[engine]
        password = env_values.get("DB_PASSWORD", "")
        host = env_values.get("DB_HOST") or "127.0.0.1"
        port = env_values.get("DB_PORT") or DEFAULT_PORTS[engine]

        if engine == MYSQL:
            args = ["mysql", "-u", user, "-h", host, "-P", port, "-N", "-B"]
            if password:
                args.append(f"-p{password}")
            args.extend(["-e", sql])
            return args, {}

        args = ["psql", "-U", user, "-h", host, "-p", port, "-d", "postgres", "-t", "-A", "-c", sql]
        return args, {"PGPASSWORD": password}

    def _execute(self, ctx: ScaffoldContext, opts: StepOptions, engine: str, env_values: Dict[str, str], sql: str):
        args, extra_env = self._client(engine, env_values, sql)
        env = ctx.process_env()
        env.update(extra_env)
        if opts.verbose:
            console.print_step(f"{args[0]}: {sql}")
        return self.commander.run(args, cwd=ctx.worktree_path, env=env, cancel_event=ctx.cancel_event)


class DbCreateStep(_DatabaseStep):
    """Create ``<site>_<adjective>_<noun>`` and remember the suffix.

    The context's suffix is tried first. If that database is already there
    it is reused only when the suffix was recorded for this worktree before
    the run; a suffix generated during this run that collides is replaced
    by a fresh one, up to the attempt limit.
    """

    def run(self, ctx: ScaffoldContext, opts: StepOptions) -> None:
        env_values = self._env_values(ctx)
        engine = resolve_engine(self.config.type, env_values)
        if engine == SQLITE:
            logger.info("sqlite is file based; no database server to create on")
            return

        site_name = ctx.site_name or ctx.repo_name
        existing = ctx.get_db_suffix()
        recorded = ctx.is_db_suffix_recorded()

        for attempt in range(DB_CREATE_MAX_ATTEMPTS):
            first = attempt == 0 and bool(existing)
            reuse = first and recorded
            suffix = existing if first else generate_suffix()
            name = build_database_name(site_name, suffix)
            sql = f"CREATE DATABASE `{name}`" if engine == MYSQL else f'CREATE DATABASE "{name}"'

            result = self._execute(ctx, opts, engine, env_values, sql)
            if result.ok:
                break
            if any(marker in result.output.lower() for marker in _ALREADY_EXISTS):
                if reuse:
                    logger.info(f"Database {name} already exists, reusing it")
                    break
                logger.info(f"Database {name} already exists, trying another suffix")
                continue
            raise CommandFailedError(f"{engine} create database {name}", result.returncode, result.output)
        else:
            raise ArborError(f"could not find a free database name after {DB_CREATE_MAX_ATTEMPTS} attempts")

        ctx.set_db_suffix(suffix, recorded=True)
        ctx.set_var("DbName", name)
        write_local_state(ctx.worktree_path, LocalState(db_suffix=suffix))
        if not opts.quiet:
            console.print_step(f"Database {name} ready")


class DbDestroyStep(_DatabaseStep):
    """Drop every database whose name ends in ``_<suffix>``."""

    def _suffix(self, ctx: ScaffoldContext) -> str:
        return ctx.get_db_suffix() or read_local_state(ctx.worktree_path).db_suffix

    def list_databases(self, ctx: ScaffoldContext, opts: StepOptions, engine: str,
                       env_values: Dict[str, str], suffix: str) -> List[str]:
        pattern = f"%\\_{suffix}"
        if engine == MYSQL:
            sql = f"SHOW DATABASES LIKE '{pattern}'"
        else:
            sql = f"SELECT datname FROM pg_database WHERE datname LIKE '{pattern}'"
        result = self._execute(ctx, opts, engine, env_values, sql)
        if not result.ok:
            raise CommandFailedError(f"{engine} list databases", result.returncode, result.output)
        return [
            line.strip() for line in result.output.splitlines()
            if line.strip().endswith(f"_{suffix}")
        ]

    def run(self, ctx: ScaffoldContext, opts: StepOptions) -> None:
        suffix = self._suffix(ctx)
        if not suffix:
            logger.info("No database suffix recorded; nothing to drop")
            return

        env_values = self._env_values(ctx)
        try:
            engine = resolve_engine(self.config.type, env_values)
        except ConfigError as e:
            console.print_warning(f"Skipping database cleanup: {e}")
            return
        if engine == SQLITE:
            return

        for name in self.list_databases(ctx, opts, engine, env_values, suffix):
            sql = f"DROP DATABASE IF EXISTS `{name}`" if engine == MYSQL else f'DROP DATABASE IF EXISTS "{name}"'
            result = self._execute(ctx, opts, engine, env_values, sql)
            if not result.ok:
                raise CommandFailedError(f"{engine} drop database {name}", result.returncode, result.output)
            if not opts.quiet:
                console.print_step(f"Dropped database {name}")
