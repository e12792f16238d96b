"""
Sample request API routes.

Submission is public; reading a request and changing its status need the
admin key. Spreadsheet and mail notifications run after the response is
sent and never affect it.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
import structlog

from models.request import RequestResponse, RequestStatusUpdate, RequestSubmit
from services.request_service import get_request_service
from services.notification_service import get_notification_service
from routes.dependencies import handle_error, require_admin

logger = structlog.get_logger(__name__)

router = APIRouter()


def notify_request_created(request: RequestResponse) -> None:
    """Background task: resolve the sector name and run every sink."""
    try:
        sector_name = get_request_service().get_sector_name(request.sector_id)
        delivered = get_notification_service().dispatch_request_created(request, sector_name)
        logger.info("request_notifications_dispatched", request_id=request.id, **delivered)
    except Exception as e:
        logger.error(
            "request_notifications_failed",
            request_id=request.id,
            error=str(e),
            error_type=type(e).__name__
        )


@router.post("", response_model=RequestResponse, status_code=201)
async def submit_request(data: RequestSubmit, background_tasks: BackgroundTasks):
    """
    Submit a sample request.

    Raises:
        422: Missing required field, or a product / group pair that is not
            assigned (in the chosen sector)
        404: Unknown product or production group
    """
    try:
        request = get_request_service().submit(data)
        background_tasks.add_task(notify_request_created, request)
        return request
    except Exception as e:
        return handle_error(e)


@router.get(
    "/{request_id}",
    response_model=RequestResponse,
    dependencies=[Depends(require_admin)]
)
async def get_request(request_id: str):
    """
    Get a request with its snapshot and status history.

    Raises:
        404: Request not found
    """
    try:
        return get_request_service().get_by_id(request_id)
    except Exception as e:
        return handle_error(e)


@router.patch(
    "/{request_id}/status",
    response_model=RequestResponse,
    dependencies=[Depends(require_admin)]
)
async def update_request_status(request_id: str, data: RequestStatusUpdate):
    """
    Set a request's status and append a history entry.

    Raises:
        404: Request not found
        422: Unknown status
    """
    try:
        return get_request_service().set_status(request_id, data.status, data.note)
    except Exception as e:
        return handle_error(e)
