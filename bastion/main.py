"""FastAPI application for bastion option resolution."""

import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI

from bastion.routes.options import router as options_router
from bastion.settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Bastion options",
    description="Resolve placement and sizing of bastion hosts for existing clusters.",
    version="1.0.0",
)

app.include_router(options_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
