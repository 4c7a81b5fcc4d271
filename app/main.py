from fastapi import FastAPI

from app.api.v1.router import router as v1_router
from app.core.telemetry import setup_telemetry
from app.services.registry import RegistryCache

app = FastAPI(title="Listing Gateway API", version="0.1.0")
app.state.registry_cache = RegistryCache()

setup_telemetry(app)
app.include_router(v1_router)
