# =======================================================================================
# livestock_gate/__main__.py - `python -m livestock_gate`
# =======================================================================================
import uvicorn
from .config import config

if __name__ == "__main__":
    uvicorn.run("livestock_gate.main:app", host=config.API_HOST, port=config.API_PORT)
