"""Storage router: image uploads and signed downloads."""

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from fastapi.responses import FileResponse

from study_tracker.models.user import User
from study_tracker.middleware.auth import get_current_user
from study_tracker.services import storage

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.post("/{bucket}", status_code=201)
async def upload_object(
    bucket: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
):
    """Store an image under the caller's folder and return a signed URL for it."""
    if bucket not in storage.BUCKETS:
        raise HTTPException(status_code=404, detail="Bucket not found")
    data = await file.read()
    try:
        path = await storage.save(bucket, current_user.id, data, (file.content_type or "").lower())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"storage_path": path, "signed_url": storage.create_signed_url(bucket, path)}


@router.get("/{bucket}/object")
def download_object(bucket: str, token: str):
    """Serve an object to anyone holding a valid, unexpired signed token."""
    try:
        path = storage.resolve_signed_token(bucket, token)
    except (PermissionError, ValueError):
        raise HTTPException(status_code=403, detail="Invalid or expired link")
    except LookupError:
        raise HTTPException(status_code=404, detail="Object not found")
    return FileResponse(path)
