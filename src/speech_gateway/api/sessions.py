"""Session inspection and management endpoints."""

from fastapi import APIRouter, HTTPException

from speech_gateway.dependencies import get_session_registry

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


@router.get("")
async def list_sessions():
    """List all live streaming sessions."""
    registry = get_session_registry()
    sessions = registry.get_all_sessions()

    return {
        "sessions": [
            {
                "session_id": s.session_id,
                "state": s.mediator.state.value,
                "created_at": s.created_at.isoformat(),
                "frames_sent": s.mediator.metrics.frames_sent,
                "bytes_sent": s.mediator.metrics.bytes_sent,
                "transcripts_delivered": s.mediator.metrics.transcripts_delivered,
            }
            for s in sessions
        ],
        "count": len(sessions),
    }


@router.get("/metrics")
async def get_metrics():
    """Aggregated mediator counters and session totals."""
    return get_session_registry().get_aggregate_metrics()


@router.delete("/{session_id}")
async def terminate_session(session_id: str):
    """Force terminate a session (admin use)."""
    registry = get_session_registry()

    # close_session detaches atomically - returns True if found and closed
    closed = await registry.close_session(session_id)

    if not closed:
        raise HTTPException(status_code=404, detail="Session not found")

    return {"status": "closed", "session_id": session_id}
