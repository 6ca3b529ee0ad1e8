import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from backend.presenter import WebPlayer
from backend.routes import router
from vn_runtime.config import EngineConfig, load_config
from vn_runtime.scripts import ScriptStore
from vn_runtime.state import JsonStateStore, StateStore

load_dotenv(Path(__file__).parent.parent / ".env")

ROOT = Path(__file__).parent.parent
DEFAULT_SCRIPT_DIR = ROOT / "presets" / "dialogue"
DEFAULT_STATE_PATH = ROOT / "data" / "state.json"


def create_app(
    script_dir: Path | None = None,
    state: StateStore | None = None,
    config: EngineConfig | None = None,
) -> FastAPI:
    resolved_scripts = script_dir or Path(os.getenv("VN_SCRIPT_DIR", str(DEFAULT_SCRIPT_DIR)))
    if state is None:
        state = JsonStateStore(Path(os.getenv("VN_STATE_PATH", str(DEFAULT_STATE_PATH))))
    if config is None:
        config_path = os.getenv("VN_CONFIG_PATH", "")
        config = load_config(Path(config_path) if config_path else None)

    app = FastAPI(title="VN Runtime")
    app.state.player = WebPlayer(config, ScriptStore(resolved_scripts), state)
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses VN_* env vars or defaults)
app = create_app()
