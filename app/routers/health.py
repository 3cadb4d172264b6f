from fastapi import APIRouter

from app.services import cfbd

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check():
    return {
        "status": "ok",
        "message": "CFB Betting Trends API is running",
        "cfbd_configured": cfbd.is_api_enabled(),
        "disclaimer": "For informational purposes only. Past results do not predict future outcomes."
    }
