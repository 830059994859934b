"""API route definitions."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from chrome_provider.browser.provider import BrowserProvider
from chrome_provider.errors import ConfigurationError, ProviderError, SessionNotFoundError
from chrome_provider.models import Capabilities
from chrome_provider.utils.logging import get_logger

router = APIRouter(prefix="/browsers")
logger = get_logger(__name__)


class OpenRequest(BaseModel):
    """Request to open a browser for a run."""

    page_url: str = Field(..., description="URL the browser opens; must contain the run id")
    config: str = Field(default="", description="Browser configuration string")


class CloseResponse(BaseModel):
    """Outcome of closing a browser."""

    closed: bool


class ScreenshotRequest(BaseModel):
    """Request to save a screenshot."""

    path: str


class ResizeRequest(BaseModel):
    """Request to resize the page from its current to a target size."""

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    current_width: int = Field(..., gt=0)
    current_height: int = Field(..., gt=0)


class LocalResponse(BaseModel):
    """Whether a browser runs with a local native window."""

    local: bool


def get_provider(request: Request) -> BrowserProvider:
    """Provider owned by the running application."""
    provider: BrowserProvider = request.app.state.provider
    return provider


def _to_http_error(error: ProviderError) -> HTTPException:
    if isinstance(error, SessionNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ConfigurationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))

    logger.error("Provider operation failed", error=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


@router.post(
    "/{run_id}",
    status_code=status.HTTP_201_CREATED,
    summary="Open a browser",
)
async def open_browser(
    run_id: str,
    request: OpenRequest,
    provider: BrowserProvider = Depends(get_provider),
) -> dict[str, str]:
    """
    Launch or attach to a browser for the run and open the page URL.

    Returns once the page has reported ready through the ready endpoint.
    """
    try:
        await provider.open_browser(run_id, request.page_url, request.config)
    except ProviderError as e:
        raise _to_http_error(e) from e
    return {"run_id": run_id}


@router.delete("/{run_id}", response_model=CloseResponse, summary="Close a browser")
async def close_browser(
    run_id: str,
    provider: BrowserProvider = Depends(get_provider),
) -> CloseResponse:
    """Close the run's browser; ``closed`` is false when cleanup was incomplete."""
    try:
        return CloseResponse(closed=await provider.close_browser(run_id))
    except ProviderError as e:
        raise _to_http_error(e) from e


@router.post(
    "/{run_id}/ready",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Report that the run's page has connected",
)
async def browser_ready(
    run_id: str,
    provider: BrowserProvider = Depends(get_provider),
) -> Response:
    provider.notify_ready(run_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{run_id}/screenshot", summary="Save a screenshot")
async def take_screenshot(
    run_id: str,
    request: ScreenshotRequest,
    provider: BrowserProvider = Depends(get_provider),
) -> dict[str, str]:
    try:
        path = await provider.take_screenshot(run_id, request.path)
    except ProviderError as e:
        raise _to_http_error(e) from e
    return {"path": str(path)}


@router.post(
    "/{run_id}/resize",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Resize the page",
)
async def resize_window(
    run_id: str,
    request: ResizeRequest,
    provider: BrowserProvider = Depends(get_provider),
) -> Response:
    try:
        await provider.resize_window(
            run_id,
            request.width,
            request.height,
            request.current_width,
            request.current_height,
        )
    except ProviderError as e:
        raise _to_http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{run_id}/maximize",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Maximize the browser window",
)
async def maximize_window(
    run_id: str,
    provider: BrowserProvider = Depends(get_provider),
) -> Response:
    try:
        await provider.maximize_window(run_id)
    except ProviderError as e:
        raise _to_http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{run_id}/capabilities",
    response_model=Capabilities,
    summary="Window actions available for the browser",
)
async def get_capabilities(
    run_id: str,
    provider: BrowserProvider = Depends(get_provider),
) -> Capabilities:
    try:
        return await provider.has_custom_action_for_browser(run_id)
    except ProviderError as e:
        raise _to_http_error(e) from e


@router.get("/{run_id}/local", response_model=LocalResponse, summary="Is the browser local")
async def is_local_browser(
    run_id: str,
    config: str = "",
    provider: BrowserProvider = Depends(get_provider),
) -> LocalResponse:
    try:
        return LocalResponse(local=await provider.is_local_browser(run_id, config))
    except ProviderError as e:
        raise _to_http_error(e) from e


@router.get("/{run_id}/video-frame", summary="Capture a JPEG video frame")
async def get_video_frame(
    run_id: str,
    provider: BrowserProvider = Depends(get_provider),
) -> Response:
    try:
        frame = await provider.get_video_frame_data(run_id)
    except ProviderError as e:
        raise _to_http_error(e) from e
    return Response(content=frame, media_type="image/jpeg")
