"""
Security and audit utilities for payment and webhook processing
"""
import logging

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Get real client IP address"""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


class PaymentAuditLogger:
    """Audit logging for payment, webhook and moderation operations"""

    @staticmethod
    def log_checkout_started(user_id, order_number, amount, session_id):
        """Log a checkout session being opened"""
        logger.info(
            "Checkout started",
            extra={
                'user_id': user_id,
                'order_number': order_number,
                'amount': str(amount),
                'session_id': session_id,
                'event_type': 'checkout_started'
            }
        )

    @staticmethod
    def log_payment_success(order_number, user_id, amount, payment_intent_id):
        """Log successful payment"""
        logger.info(
            "Payment successful",
            extra={
                'order_number': order_number,
                'user_id': user_id,
                'amount': str(amount),
                'payment_intent_id': payment_intent_id,
                'event_type': 'payment_success'
            }
        )

    @staticmethod
    def log_payment_failure(user_id, order_number, amount, error_message, provider_error_code=None):
        """Log failed payment"""
        logger.warning(
            "Payment failed",
            extra={
                'user_id': user_id,
                'order_number': order_number,
                'amount': str(amount),
                'error_message': error_message,
                'provider_error_code': provider_error_code,
                'event_type': 'payment_failure'
            }
        )

    @staticmethod
    def log_refund(order_number, payment_intent_id, amount, reason, succeeded):
        """Log a refund request and its outcome"""
        log = logger.info if succeeded else logger.error
        log(
            "Refund requested" if succeeded else "Refund request failed",
            extra={
                'order_number': order_number,
                'payment_intent_id': payment_intent_id,
                'amount': str(amount),
                'reason': reason,
                'event_type': 'refund' if succeeded else 'refund_failure'
            }
        )

    @staticmethod
    def log_security_event(event_type, ip_address, user_id=None, details=None):
        """Log security-related events"""
        logger.warning(
            f"Security event: {event_type}",
            extra={
                'event_type': f'security_{event_type}',
                'ip_address': ip_address,
                'user_id': str(user_id) if user_id is not None else None,
                'details': details
            }
        )
