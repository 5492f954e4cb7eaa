"""Public media serving from the blob buckets."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from shop.core.errors import NotFound
from shop.services.media_service import MEDIA_KEY_PATTERN
from shop.storage import MediaStorage, get_storage, guess_content_type

router: APIRouter = APIRouter()
fallback_router: APIRouter = APIRouter()

CACHE_CONTROL = "public, max-age=31536000, immutable"


def _serve(key: str, storage: MediaStorage) -> Response:
    found = storage.find(key)
    if found is None:
        raise NotFound("Media not found")
    data, _bucket = found
    return Response(content=data, media_type=guess_content_type(key), headers={"Cache-Control": CACHE_CONTROL})


@router.get("/media/{key}")
def get_media(key: str, storage: MediaStorage = Depends(get_storage)) -> Response:
    return _serve(key, storage)


@fallback_router.get("/{key}")
def get_media_fallback(key: str, storage: MediaStorage = Depends(get_storage)) -> Response:
    """Bare ``/<key>`` lookup, limited to media file extensions."""
    if not MEDIA_KEY_PATTERN.search(key):
        raise NotFound("Not a media file")
    return _serve(key, storage)
