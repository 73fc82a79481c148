from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .dependencies import lifespan, settings
from .routes import chat, extracts, keywords, mcp, summaries, system

app = FastAPI(title="Compliance Research Backend", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_origin, "http://localhost", "http://127.0.0.1"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system.router)
app.include_router(extracts.router)
app.include_router(keywords.router)
app.include_router(summaries.router)
app.include_router(mcp.router)
app.include_router(chat.router)


def main() -> None:
    import uvicorn

    logging.basicConfig(level=settings.log_level)
    port = int(os.environ.get("BACKEND_PORT", "8000"))
    uvicorn.run("compliance_backend.app:app", host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
