"""
Notifications for new sample requests.

After a request is stored, one row is appended to the response spreadsheet
and one mail goes to the admin address. Both are best effort: failures are
logged and never reach the customer, whose request is already saved.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo
import structlog

from config import settings
from integrations.google_sheets import GoogleSheetsClient, get_sheets_client
from integrations import mailer
from models.request import RequestResponse

logger = structlog.get_logger(__name__)


OTHER_SECTOR_NAME = "Other"
EMPTY = "-"
DATE_FORMAT = "%d.%m.%Y %H:%M:%S"


def local_time(value: Optional[datetime] = None) -> datetime:
    """
    Timestamp in settings.display_timezone.

    Naive values are taken as UTC; None means now.
    """
    value = value or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(settings.display_timezone))


@dataclass
class RequestNotification:
    """Field set shared by the spreadsheet row and the mail template."""
    date: str
    company_name: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str
    address: str
    sector: str
    production_groups: str
    products: str
    request_id: str

    @classmethod
    def from_request(
        cls,
        request: RequestResponse,
        sector_name: Optional[str],
        when: Optional[datetime] = None
    ) -> "RequestNotification":
        group_names = dict.fromkeys(p.production_group_name for p in request.products)
        submitted = local_time(when or request.created_at)
        return cls(
            date=submitted.strftime(DATE_FORMAT),
            company_name=request.company_name,
            first_name=request.first_name or EMPTY,
            last_name=request.last_name or EMPTY,
            full_name=request.full_name,
            email=request.email,
            phone=request.phone,
            address=request.address or EMPTY,
            sector=sector_name or OTHER_SECTOR_NAME,
            production_groups=", ".join(group_names),
            products=", ".join(p.product_name for p in request.products),
            request_id=request.id,
        )

    def to_sheet_row(self) -> list[str]:
        """Fixed 11-column row: date … products, request id."""
        return [
            self.date,
            self.company_name,
            self.first_name,
            self.last_name,
            self.email,
            self.phone,
            self.address,
            self.sector,
            self.production_groups,
            self.products,
            self.request_id,
        ]


class NotificationService:
    """Fire-and-forget sinks for new requests."""

    def __init__(self, sheets_client: Optional[GoogleSheetsClient] = None):
        self._sheets_client = sheets_client

    def dispatch_request_created(
        self,
        request: RequestResponse,
        sector_name: Optional[str]
    ) -> dict[str, bool]:
        """
        Run every sink; never raises.

        Returns:
            Dict of sink name → delivered
        """
        notification = RequestNotification.from_request(request, sector_name)
        return {
            "sheet": self._append_to_sheet(notification),
            "email": self._send_admin_mail(notification),
        }

    def _append_to_sheet(self, notification: RequestNotification) -> bool:
        if not settings.sheets_configured and self._sheets_client is None:
            logger.info("sheets_not_configured_skipping_append", request_id=notification.request_id)
            return False

        try:
            client = self._sheets_client or get_sheets_client()
            client.append_row(settings.response_sheet_range, notification.to_sheet_row())
        except Exception as e:
            logger.error(
                "sheet_append_failed",
                request_id=notification.request_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return False

        logger.info("sheet_row_appended", request_id=notification.request_id)
        return True

    def _send_admin_mail(self, notification: RequestNotification) -> bool:
        if not settings.admin_email:
            logger.info("admin_email_not_configured", request_id=notification.request_id)
            return False

        context = vars(notification)
        try:
            return mailer.send_mail(
                to_email=settings.admin_email,
                subject=mailer.SAMPLE_REQUEST_SUBJECT.format(company_name=notification.company_name),
                html_body=mailer.render_template(mailer.SAMPLE_REQUEST_HTML, context),
            )
        except Exception as e:
            logger.error(
                "admin_mail_failed",
                request_id=notification.request_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return False


# Singleton instance for convenience
_notification_service: Optional[NotificationService] = None

def get_notification_service() -> NotificationService:
    """Get or create NotificationService instance."""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
