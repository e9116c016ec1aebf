"""Developer commands exposed as project scripts.

Usage (after `pip install -e .`):
  runserver --host=0.0.0.0 --port=8000 --no-reload
  run-worker          # Celery worker with the beat scheduler embedded
  run-tests -k pipeline
  migrate             # alembic upgrade head unless other args are given
  init-env            # .env.example -> .env when .env is missing
  cleanup-sessions    # one session sweep in-process
"""
from __future__ import annotations

import shutil
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

ROOT = Path(__file__).resolve().parents[1]


def _args() -> List[str]:
    return sys.argv[1:]


def _option(name: str, default: Optional[str] = None) -> Optional[str]:
    """Value of `--name=value` among the forwarded args."""
    prefix = f"--{name}="
    for a in _args():
        if a.startswith(prefix):
            return a[len(prefix):]
    return default


def runserver() -> None:
    """Serve the API with uvicorn. Flags: --host=, --port=, --reload / --no-reload."""
    import uvicorn

    host = _option("host", "127.0.0.1")
    port_value = _option("port", "8000")
    if not port_value.isdigit():
        print(f"Invalid port {port_value!r}, using 8000")
        port_value = "8000"
    reload = "--no-reload" not in _args()

    print(f"Adaptive auth API on {host}:{port_value} (reload={reload})")
    uvicorn.run("adaptive_auth.main:app", host=host, port=int(port_value), reload=reload)


def run_worker() -> None:
    """Start a Celery worker that also runs the session sweep schedule."""
    loglevel = _option("loglevel", "info")
    cmd = ["celery", "-A", "adaptive_auth.worker", "worker", "--beat", f"--loglevel={loglevel}"]
    subprocess.run(cmd, check=True)


def run_tests() -> None:
    subprocess.run(["pytest", *_args()], check=True, cwd=ROOT)


def run_migrations() -> None:
    args = _args() or ["upgrade", "head"]
    subprocess.run(["alembic", *args], check=True, cwd=ROOT)


def init_env() -> None:
    src, dst = ROOT / ".env.example", ROOT / ".env"
    if dst.exists():
        print(f"Keeping existing {dst}")
        return
    if not src.exists():
        print(f"No template at {src}")
        return
    shutil.copy(src, dst)
    print(f"Wrote {dst} from {src.name}; set IDP_JWT_KEY before starting the API")


def cleanup_sessions() -> None:
    """Delete sessions past the retention window once, in-process."""
    from adaptive_auth.core.database import SessionLocal
    from adaptive_auth.core.logger import setup_logging
    from adaptive_auth.services.session_service import SessionService

    setup_logging()
    db = SessionLocal()
    try:
        deleted = SessionService.cleanup_expired_sessions(db)
    finally:
        db.close()
    print(f"Deleted {deleted} expired session(s)")


COMMANDS = {
    "runserver": runserver,
    "run-worker": run_worker,
    "run-tests": run_tests,
    "migrate": run_migrations,
    "init-env": init_env,
    "cleanup-sessions": cleanup_sessions,
}


if __name__ == "__main__":
    # python -m adaptive_auth.cli <command> [args]
    if len(sys.argv) <= 1:
        print(__doc__)
        sys.exit(0)
    command = COMMANDS.get(sys.argv.pop(1))
    if command is None:
        print(__doc__)
        sys.exit(2)
    command()
