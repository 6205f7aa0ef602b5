"""FastAPI application: health check, discovery and chat endpoints."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from .assistant import ScoutAssistant, build_assistant
from .config import Settings


class DiscoverRequest(BaseModel):
    query: Optional[str] = None


class ChatRequest(BaseModel):
    message: str


def create_app(assistant: Optional[ScoutAssistant] = None) -> FastAPI:
    """
    Create the API app.

    Args:
        assistant: Prebuilt assistant; built from Settings at startup when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = assistant is None
        app.state.assistant = assistant or build_assistant(Settings())
        try:
            yield
        finally:
            if owned:
                await app.state.assistant.close()

    app = FastAPI(title="ScoutBet API", lifespan=lifespan)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint with collaborator status."""
        current: ScoutAssistant = request.app.state.assistant
        status = current.orchestrator.service_status()
        status["llm"] = current.llm_client is not None
        return {"status": "healthy", "services": status}

    @app.post("/discover")
    async def discover(body: DiscoverRequest, request: Request):
        """Run one discovery and return the result envelope."""
        current: ScoutAssistant = request.app.state.assistant
        result = await current.orchestrator.discover(body.query)
        return result.to_dict()

    @app.post("/chat")
    async def chat(body: ChatRequest, request: Request):
        """Answer a chat message with discovery data and a summary."""
        if not body.message.strip():
            raise HTTPException(status_code=400, detail="message is required")
        current: ScoutAssistant = request.app.state.assistant
        reply = await current.ask(body.message)
        return reply.to_dict()

    return app


app = create_app()
