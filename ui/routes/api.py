"""API routes for rectangles, class file and DEX inspection."""

import json

from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

import dex
from classfile import parse
from internal.logging import get_logger
from shapes.rectangle import Rectangle

router = APIRouter(prefix="/api/v1", tags=["api"])

# Set by app.py
_inspector_config = None


def init(inspector_config):
    """Initialize with the inspector config section."""
    global _inspector_config
    _inspector_config = inspector_config


class AsciiJSONResponse(JSONResponse):
    """JSON with non-ASCII escaped; unpaired surrogates from modified UTF-8 cannot be encoded raw."""

    def render(self, content):
        return json.dumps(content, ensure_ascii=True, allow_nan=False, separators=(",", ":")).encode("ascii")


class RectangleIn(BaseModel):
    width: float
    length: float


@router.post("/rectangles")
async def create_rectangle(payload: RectangleIn):
    """Build a Rectangle and report what it exposes (only its width).

    Non-finite widths are kept as-is and written as the bare ``NaN``,
    ``Infinity`` and ``-Infinity`` tokens that Python's json module reads back.
    """
    rect = Rectangle(payload.width, payload.length)
    body = json.dumps({"width": rect.get_width()}, allow_nan=True)
    return Response(content=body, media_type="application/json")


async def _read_upload(request):
    data = await request.body()
    if len(data) > _inspector_config.max_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"upload larger than {_inspector_config.max_size} bytes",
        )
    return data


@router.post("/classfile", response_class=AsciiJSONResponse)
async def inspect_class(request: Request):
    """Parse an uploaded class file and return its structure as JSON."""
    data = await _read_upload(request)
    class_file = parse(data)
    get_logger("http").info("Class file inspected", this_class=class_file.this_class, size=len(data))
    return class_file.to_dict()


@router.post("/classfile/dump", response_class=PlainTextResponse)
async def dump_class(request: Request):
    """Parse an uploaded class file and return the text dump."""
    data = await _read_upload(request)
    return parse(data).render()


@router.post("/dex", response_class=AsciiJSONResponse)
async def inspect_dex(request: Request):
    """Parse an uploaded DEX file and return its tables as JSON."""
    data = await _read_upload(request)
    dex_file = dex.parse(data)
    get_logger("http").info("DEX file inspected", version=dex_file.version, classes=len(dex_file.class_defs), size=len(data))
    return dex_file.to_dict()


@router.post("/dex/dump", response_class=PlainTextResponse)
async def dump_dex(request: Request):
    """Parse an uploaded DEX file and return the text dump."""
    data = await _read_upload(request)
    return dex.parse(data).render()
