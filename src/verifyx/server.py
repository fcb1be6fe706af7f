"""
Verify-X Server - FastAPI application
"""

import asyncio
import logging
import time
import uuid
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from . import __version__
from .errors import InvalidInput, StreamDisconnect
from .progress import ProgressEvent, ProgressTracker
from .schemas import (
    ConsensusRequest,
    GenerateRequest,
    GenerateResponse,
    ReportResponse,
    SplitRequest,
    SplitResponse,
    VerifyRequest,
    report_response,
)
from .service import VerificationService
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )


def new_session_id() -> str:
    return f"s_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


async def progress_stream(request: Request, tracker: ProgressTracker, session_id: str,
                          keepalive_interval: float) -> AsyncGenerator[str, None]:
    """Server-sent events for one session until it finishes or the client leaves"""
    subscription = tracker.subscribe(session_id)
    try:
        # Sent before the catch-up snapshot so the browser fires onopen
        yield ProgressEvent(type="connected", data={"session_id": session_id}).to_sse()

        loop = asyncio.get_running_loop()
        next_ping = loop.time() + keepalive_interval
        while True:
            # Pings keep their own schedule even while events keep arriving
            remaining = next_ping - loop.time()
            if remaining <= 0:
                if await request.is_disconnected():
                    break
                yield ": ping\n\n"
                next_ping = loop.time() + keepalive_interval
                continue

            try:
                event = await subscription.next_event(timeout=remaining)
            except StreamDisconnect:
                break
            if event is None:
                continue

            yield event.to_sse()
            if event.type in ("completed", "error"):
                break
    finally:
        tracker.unsubscribe(session_id, subscription)


def create_app(settings: Optional[Settings] = None,
               service: Optional[VerificationService] = None) -> FastAPI:
    """Build the application around one VerificationService"""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Verify-X",
        description="Multi-Validator Proposition Verification Service",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.service = service or VerificationService(settings)

    @app.on_event("startup")
    async def startup_event():
        logger.info("Starting Verify-X server...")
        await app.state.service.initialize()
        logger.info(f"Configuration: {app.state.service.secure_config.get_summary()}")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down Verify-X server...")
        await app.state.service.cleanup()
        logger.info("Verify-X server shutdown complete")

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": time.time(),
            "oracle": app.state.service.oracle.name,
        }

    @app.get("/api/status")
    async def service_status():
        """Oracle, API key and rate limiter status"""
        return {"success": True, **app.state.service.get_status()}

    @app.get("/api/metrics")
    async def get_metrics():
        return app.state.service.get_metrics()

    @app.post("/api/generate", response_model=GenerateResponse)
    async def generate_answer(request: GenerateRequest):
        """Child-friendly answer to a question"""
        try:
            answer = await app.state.service.generate_answer(request.question)
        except InvalidInput as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            logger.error(f"Answer generation failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to generate answer")
        return GenerateResponse(question=request.question.strip(), answer=answer)

    @app.post("/api/split", response_model=SplitResponse)
    async def split_propositions(request: SplitRequest):
        """Split an answer into fact-checkable propositions"""
        text = request.answer or request.question
        if not text or not text.strip():
            raise HTTPException(status_code=400,
                                detail="Answer or question text is required for splitting")
        try:
            propositions = await app.state.service.split(text)
        except InvalidInput as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            logger.error(f"Proposition splitting failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to split propositions")
        return SplitResponse(propositions=propositions, text=text, session_id=request.session_id)

    @app.post("/api/verify", response_model=ReportResponse)
    async def verify(request: VerifyRequest):
        """Run the full validator panel over the propositions"""
        session_id = request.session_id or new_session_id()
        logger.info(f"Verification request for session {session_id}: "
                    f"{len(request.propositions)} proposition(s)")
        try:
            report = await app.state.service.verify(request.propositions, session_id)
        except InvalidInput as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            logger.error(f"Verification failed for session {session_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        return report_response(report)

    @app.get("/api/progress/status/{session_id}")
    async def progress_status(session_id: str):
        """Point read of a session's progress"""
        status = app.state.service.tracker.get_status(session_id)
        if status is None:
            return {
                "session_id": session_id,
                "is_processing": False,
                "error": "Progress data not found",
            }
        return status

    @app.get("/api/progress/stream/{session_id}")
    async def progress_events(session_id: str, request: Request):
        """Live progress of a session as server-sent events"""
        return StreamingResponse(
            progress_stream(request, app.state.service.tracker, session_id,
                            settings.keepalive_interval),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    @app.post("/api/consensus", response_model=ReportResponse)
    async def analyze_consensus(request: ConsensusRequest):
        """Consensus over panels collected elsewhere"""
        if not request.results:
            raise HTTPException(status_code=400, detail="Verification results are required")
        panels = [panel.to_panel() for panel in request.results]
        report = await app.state.service.analyze_panels(panels, session_id=request.verification_id)
        return report_response(report)

    @app.get("/api/consensus")
    async def list_consensus(limit: int = 20):
        """Latest recorded reports"""
        if limit < 1:
            raise HTTPException(status_code=400, detail="limit must be positive")
        return {"success": True, "reports": await app.state.service.recent_reports(limit)}

    @app.get("/api/consensus/{consensus_id}", response_model=ReportResponse)
    async def get_consensus(consensus_id: str):
        report = await app.state.service.get_report(consensus_id)
        if report is None:
            raise HTTPException(status_code=404, detail=f"Consensus {consensus_id} not found")
        return report_response(report)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Verify-X - Multi-Validator Proposition Verification",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()


def main():
    """Main entry point for running the server"""
    import uvicorn

    settings = app.state.settings
    uvicorn.run(
        "verifyx.server:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
