from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query
from jwt import ExpiredSignatureError, PyJWTError
from starlette.concurrency import run_in_threadpool
import logging
from typing import Optional
from interview_buddy.core.config import settings
from interview_buddy.core.database import InterviewDB, UserDB
from interview_buddy.core.dependencies import decode_token, user_profile
from interview_buddy.services.session_service import VoiceSessionService, active_sessions

router = APIRouter()
logger = logging.getLogger(__name__)

async def authenticate(websocket: WebSocket, token: str) -> Optional[dict]:
    """Resolve the session owner, closing the socket with 403 when the token is unusable"""
    logger.info(f"🔗 [WEBSOCKET] Connection attempt with token: {token[:20]}...")

    if not token:
        await websocket.close(code=403)
        return None

    try:
        user_id = decode_token(token)
    except (ExpiredSignatureError, PyJWTError) as e:
        logger.warning(f"❌ [AUTH] Invalid token: {e}")
        await websocket.close(code=403)
        return None

    user = await run_in_threadpool(UserDB.get_user_by_id, user_id)
    if not user:
        logger.warning(f"❌ [AUTH] Unknown user: {user_id}")
        await websocket.close(code=403)
        return None

    logger.info(f"✅ [AUTH] Authenticated user: {user_id}")
    return user_profile(user)

async def terminate(websocket: WebSocket, reason: str) -> None:
    await websocket.accept()
    await websocket.send_json({"type": "terminate", "reason": reason})
    await websocket.close()

async def run_session(websocket: WebSocket, user: dict, flow: str, interview: Optional[dict] = None) -> None:
    user_id = user["id"]

    # Session deduplication - one voice session per user
    if user_id in active_sessions:
        logger.warning(f"🚨 [SESSION] User {user_id} already has active session")
        await terminate(websocket, "You already have an active voice session.")
        return

    # Claimed before the first await so a concurrent connect sees it
    active_sessions.add(user_id)
    logger.info(f"📊 [SESSIONS] Active sessions: {len(active_sessions)}")

    try:
        await websocket.accept()
        logger.info(f"✅ [WEBSOCKET] Connection accepted for user {user_id}")

        session_service = VoiceSessionService(user=user, websocket=websocket, flow=flow, interview=interview)
        await session_service.run()

    except WebSocketDisconnect:
        logger.info(f"🔌 [WEBSOCKET] Client {user_id} disconnected normally")
    except Exception as e:
        logger.exception(f"❌ [SESSION] Session error for user {user_id}: {e}")
    finally:
        active_sessions.discard(user_id)
        logger.info(f"🧹 [CLEANUP] Removed user {user_id} from active sessions")
        logger.info(f"📊 [SESSIONS] Active sessions remaining: {len(active_sessions)}")

@router.websocket("/ws/setup")
async def websocket_setup(websocket: WebSocket, token: str = Query(...)):
    """Voice setup: collect preferences, then generate and read back questions"""
    user = await authenticate(websocket, token)
    if user is None:
        return
    await run_session(websocket, user, "setup")

@router.websocket("/ws/practice/{interview_id}")
async def websocket_practice(websocket: WebSocket, interview_id: str, token: str = Query(...)):
    """Voice practice over a stored interview"""
    user = await authenticate(websocket, token)
    if user is None:
        return

    interview = await run_in_threadpool(InterviewDB.get_interview_by_id, interview_id)
    if not interview or not interview.get("questions"):
        logger.warning(f"❌ [SESSION] Interview {interview_id} not found or has no questions")
        await terminate(websocket, "Interview not found")
        return

    await run_session(websocket, user, "practice", interview)

@router.get("/health")
async def session_health_check():
    """Health check for voice sessions"""
    return {
        "status": "healthy",
        "service": "session",
        "active_sessions": len(active_sessions),
        "server_tts": bool(settings.RIME_API_KEY)
    }
