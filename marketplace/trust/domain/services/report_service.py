"""
ReportService - Reports, automatic suspension and moderation

Users report other users, listings or orders. When enough distinct reporters
have open reports against the same user inside the suspension window, the
user is suspended from the marketplace automatically. Admins review reports
and can suspend or reinstate users by hand.
"""

import logging
from typing import Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.utils import timezone

from marketplace import policy
from marketplace.infra.observability.metrics import reports_total, suspensions_total
from marketplace.listings.domain.models import Listing
from marketplace.ordering.domain.models import Order
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from marketplace.trust.domain.models import Report
from payment_system.security import PaymentAuditLogger
from utils.rbac import is_admin

User = get_user_model()
logger = logging.getLogger(__name__)

REPORT_REASONS = {choice for choice, _ in Report.REASON_CHOICES}
REPORT_STATUSES = {choice for choice, _ in Report.STATUS_CHOICES}


class ReportService(BaseService):
    """
    Service for reports and marketplace suspension.

    Responsibilities:
    - Create reports against a user, listing or order
    - Auto-suspend users reported by enough distinct reporters
    - Admin review of reports and manual suspension
    """

    @BaseService.log_performance
    def submit_report(
        self,
        reporter,
        reason: str,
        description: str = "",
        target_user_id=None,
        listing_id=None,
        order_id=None,
    ) -> ServiceResult[Dict]:
        """
        Create an open report.

        When no target user is given it is taken from the reported listing's
        or order's seller. Suspension is evaluated afterwards and never fails
        the report itself.

        Returns:
            ServiceResult with ``{"report": Report, "target_suspended": bool}``
        """
        if not (target_user_id or listing_id or order_id):
            return service_err(ErrorCodes.INVALID_INPUT, "A report needs a target user, listing or order")

        if reason not in REPORT_REASONS:
            return service_err(ErrorCodes.INVALID_INPUT, f"Unknown report reason '{reason}'")

        listing = None
        if listing_id:
            listing = Listing.objects.filter(pk=listing_id).first()
            if listing is None:
                return service_err(ErrorCodes.LISTING_NOT_FOUND, "Listing not found")

        order = None
        if order_id:
            order = Order.objects.filter(pk=order_id).first()
            if order is None:
                return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found")
            if reporter.pk not in (order.buyer_id, order.seller_id):
                return service_err(ErrorCodes.PERMISSION_DENIED, "You can only report orders you are part of")

        target_user = None
        if target_user_id:
            target_user = User.objects.filter(pk=target_user_id).first()
            if target_user is None:
                return service_err(ErrorCodes.USER_NOT_FOUND, "User not found")
        elif listing is not None:
            target_user = listing.seller
        elif order is not None:
            target_user = order.seller

        if target_user is not None and target_user.pk == reporter.pk:
            return service_err(ErrorCodes.INVALID_INPUT, "You cannot report yourself")

        report = Report.objects.create(
            reporter=reporter,
            target_user=target_user,
            listing=listing,
            order=order,
            reason=reason,
            description=description or "",
        )
        reports_total.inc()
        self.logger.info(f"Report {report.pk} filed by {reporter.pk} against user {getattr(target_user, 'pk', None)}")

        target_suspended = False
        if target_user is not None:
            target_suspended = self._evaluate_suspension(target_user)

        return service_ok({"report": report, "target_suspended": target_suspended})

    def count_recent_reporters(self, target_user_id) -> int:
        """Distinct reporters with open reports against the user inside the window."""
        window_start = timezone.now() - policy.suspension_window()
        return (
            Report.objects.filter(
                target_user_id=target_user_id,
                status=Report.STATUS_OPEN,
                created_at__gte=window_start,
            )
            .values("reporter_id")
            .distinct()
            .count()
        )

    def _evaluate_suspension(self, target_user) -> bool:
        """
        Suspend the user when the distinct-reporter threshold is reached.

        Returns True if this call applied the suspension. Database failures
        are logged and reported as "not suspended".
        """
        try:
            with transaction.atomic():
                reporters = self.count_recent_reporters(target_user.pk)
                if reporters < policy.suspension_report_threshold():
                    return False

                suspended = User.objects.filter(pk=target_user.pk, marketplace_suspended=False).update(
                    marketplace_suspended=True, marketplace_suspended_at=timezone.now()
                )
        except DatabaseError as e:
            self.logger.error(f"Suspension check failed for user {target_user.pk}: {e}", exc_info=True)
            return False

        if suspended:
            suspensions_total.labels(source="reports").inc()
            PaymentAuditLogger.log_security_event(
                "marketplace_auto_suspension",
                ip_address=None,
                user_id=target_user.pk,
                details={"distinct_reporters": reporters},
            )
        return bool(suspended)

    # ===== Admin =====

    def list_reports(self, admin, status: Optional[str] = None) -> ServiceResult[List[Report]]:
        if not is_admin(admin):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Admin access required")

        reports = Report.objects.select_related("reporter", "target_user", "listing", "order", "resolved_by")
        if status:
            if status not in REPORT_STATUSES:
                return service_err(ErrorCodes.INVALID_INPUT, f"Unknown report status '{status}'")
            reports = reports.filter(status=status)
        return service_ok(list(reports))

    @BaseService.log_performance
    def update_report(self, admin, report_id, status: str, resolution: str = "") -> ServiceResult[Report]:
        if not is_admin(admin):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Admin access required")

        if status not in REPORT_STATUSES:
            return service_err(ErrorCodes.INVALID_INPUT, f"Unknown report status '{status}'")

        report = Report.objects.filter(pk=report_id).first()
        if report is None:
            return service_err(ErrorCodes.REPORT_NOT_FOUND, "Report not found")

        report.status = status
        report.resolution = resolution or ""
        if status == Report.STATUS_OPEN:
            report.resolved_by = None
            report.resolved_at = None
        else:
            report.resolved_by = admin
            report.resolved_at = timezone.now()
        report.save(update_fields=["status", "resolution", "resolved_by", "resolved_at"])

        self.logger.info(f"Report {report.pk} marked {status} by admin {admin.pk}")
        return service_ok(report)

    @BaseService.log_performance
    def set_suspension(self, admin, user_id, suspended: bool):
        if not is_admin(admin):
            return service_err(ErrorCodes.PERMISSION_DENIED, "Admin access required")

        user = User.objects.filter(pk=user_id).first()
        if user is None:
            return service_err(ErrorCodes.USER_NOT_FOUND, "User not found")

        user.marketplace_suspended = bool(suspended)
        user.marketplace_suspended_at = timezone.now() if suspended else None
        user.save(update_fields=["marketplace_suspended", "marketplace_suspended_at"])

        if suspended:
            suspensions_total.labels(source="admin").inc()
        PaymentAuditLogger.log_security_event(
            "marketplace_suspension_changed",
            ip_address=None,
            user_id=user.pk,
            details={"suspended": bool(suspended), "admin_id": str(admin.pk)},
        )
        return service_ok(user)
