"""
Email notifications for admins and fundraisers.

No mail transport is wired in: messages are rendered and written to the log.
Callers schedule `dispatch` as a background task so a failing notification
never affects the request that triggered it.
"""
from typing import Callable, Literal

from jinja2 import Environment
from loguru import logger

env = Environment(autoescape=True)

NEW_REDEMPTION_TEMPLATE = env.from_string("""
<h2>New Redemption Request</h2>
<p>A new redemption request has been submitted:</p>
<ul>
  <li><strong>Fundraiser:</strong> {{ fundraiser_name }}</li>
  <li><strong>Amount:</strong> ${{ amount }}</li>
  <li><strong>Request ID:</strong> {{ request_id }}</li>
</ul>
<p>Please log in to the admin portal to review and process this request.</p>
""")

STATUS_CHANGE_TEMPLATE = env.from_string("""
<h2>Redemption Request Status Update</h2>
<p>Hi {{ fundraiser_name }},</p>
<p>{{ message }}</p>
<ul>
  <li><strong>Amount:</strong> ${{ amount }}</li>
  <li><strong>Status:</strong> {{ status|capitalize }}</li>
  <li><strong>Request ID:</strong> {{ request_id }}</li>
</ul>
<p>Log in to your fundraiser portal to view more details.</p>
""")

MACHINE_RETURNED_TEMPLATE = env.from_string("""
<h2>Credit Card Machine Returned</h2>
<p>A credit card machine has been returned:</p>
<ul>
  <li><strong>Fundraiser:</strong> {{ fundraiser_name }}</li>
  <li><strong>Machine:</strong> {{ machine_name }}</li>
  <li><strong>Batch Number:</strong> {{ batch_number }}</li>
</ul>
<p>Please log in to the admin portal to process this return.</p>
""")

STATUS_MESSAGES = {
    "approved": "Your redemption request has been approved and is being processed.",
    "released": "Your check has been released! You should receive it shortly.",
    "rejected": "Unfortunately, your redemption request has been rejected.",
}

NotifiedStatus = Literal["approved", "released", "rejected"]


def send_email(to: str, subject: str, html_content: str) -> bool:
    """
    "Send" an email by logging it.
    Returns False if the message could not even be formatted.
    """
    try:
        logger.info("[EMAIL] Sending to: {}", to)
        logger.info("[EMAIL] Subject: {}", subject)
        logger.info("[EMAIL] Content: {}...", html_content.strip()[:100])
        return True
    except Exception:
        logger.exception("[EMAIL] Failed to send email to {}", to)
        return False


def notify_admin_new_redemption(
    admin_email: str, fundraiser_name: str, amount: str, request_id: int
) -> bool:
    html = NEW_REDEMPTION_TEMPLATE.render(
        fundraiser_name=fundraiser_name, amount=amount, request_id=request_id
    )
    return send_email(admin_email, f"New Redemption Request from {fundraiser_name}", html)


def notify_fundraiser_status_change(
    fundraiser_email: str,
    fundraiser_name: str,
    status: NotifiedStatus,
    amount: str,
    request_id: int,
) -> bool:
    if status not in STATUS_MESSAGES:
        raise ValueError(f"No notification for status {status!r}")

    html = STATUS_CHANGE_TEMPLATE.render(
        fundraiser_name=fundraiser_name,
        message=STATUS_MESSAGES[status],
        status=status,
        amount=amount,
        request_id=request_id,
    )
    subject = f"Redemption Request {status.capitalize()} - Request #{request_id}"
    return send_email(fundraiser_email, subject, html)


def notify_admin_machine_returned(
    admin_email: str, fundraiser_name: str, machine_name: str, batch_number: str
) -> bool:
    html = MACHINE_RETURNED_TEMPLATE.render(
        fundraiser_name=fundraiser_name,
        machine_name=machine_name,
        batch_number=batch_number,
    )
    return send_email(admin_email, f"Machine Returned - {machine_name}", html)


def dispatch(notify: Callable[..., bool], *args) -> bool:
    """Best-effort: any failure is logged and reported as False, never raised."""
    try:
        return notify(*args)
    except Exception:
        logger.exception("[NOTIFICATION] {} failed", getattr(notify, "__name__", notify))
        return False
