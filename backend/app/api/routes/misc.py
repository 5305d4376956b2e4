from fastapi import APIRouter

router = APIRouter(tags=["misc"])


@router.get("/health")
def health_check():
    return {"success": True, "status": "ok"}
