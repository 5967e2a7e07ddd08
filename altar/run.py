from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI

from vestry import ConnectorGate
from altar import lifecycle
from altar.api import connector as connector_api
from altar.api import health as health_api

app = FastAPI(title="Vestry")


@app.on_event("startup")
def startup_event():
    """Initialize subsystems on server startup."""
    lifecycle.startup()


@app.on_event("shutdown")
def shutdown_event():
    """Cleanup on server shutdown."""
    lifecycle.shutdown()


app.include_router(connector_api.create_router(ConnectorGate))
app.include_router(health_api.create_router(ConnectorGate))
