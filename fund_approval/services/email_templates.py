"""
Email Templates
HTML bodies for fund request notifications
"""

from html import escape
from typing import Optional

from fund_approval.models.fund_request import FundRequest
from fund_approval.utils.helpers import format_currency

_STYLE = """
<style>
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { color: white; padding: 20px; text-align: center; border-radius: 5px 5px 0 0; }
    .content { background: #f9f9f9; padding: 20px; border: 1px solid #ddd; }
    .label { font-weight: bold; color: #555; display: inline-block; width: 120px; }
    .footer { background: #333; color: white; padding: 15px; text-align: center; font-size: 12px; }
</style>
"""


def _project_name(req: FundRequest) -> str:
    return escape(req.project.name) if req.project is not None else "-"


def _layout(color: str, heading: str, body: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>{_STYLE}</head>
<body>
    <div class="container">
        <div class="header" style="background: {color};"><h2>{heading}</h2></div>
        <div class="content">{body}</div>
        <div class="footer">This is an automated message from the Fund Approval System.</div>
    </div>
</body>
</html>
"""


def _summary(req: FundRequest) -> str:
    return (
        f'<p><span class="label">Title:</span> {escape(req.title or "")}</p>'
        f'<p><span class="label">Project:</span> <b>{_project_name(req)}</b></p>'
        f'<p><span class="label">Amount:</span> <b>{format_currency(req.amount)}</b></p>'
    )


def initiator_ack(req: FundRequest) -> str:
    return _layout(
        "#4CAF50",
        f"Request #{req.id} submitted",
        _summary(req) + "<p>You'll be notified at each step.</p>"
    )


def approver_action(req: FundRequest, base_url: str) -> str:
    link = f"{base_url.rstrip('/')}/approvals/{req.id}"
    return _layout(
        "#2196F3",
        f"Approval required: Request #{req.id}",
        _summary(req) + f'<p><a href="{escape(link)}">Open request</a> to approve or reject.</p>'
    )


def final_approved(req: FundRequest) -> str:
    return _layout("#4CAF50", f"Request #{req.id} Approved", _summary(req))


def final_receiver_notice(req: FundRequest, base_url: str) -> str:
    link = f"{base_url.rstrip('/')}/final-receiver/{req.id}"
    return _layout(
        "#4CAF50",
        f"Request #{req.id} approved and assigned to you",
        _summary(req) + f'<p><a href="{escape(link)}">Open request</a> to complete it.</p>'
    )


def rejected(req: FundRequest, reason: Optional[str]) -> str:
    return _layout(
        "#f44336",
        f"Request #{req.id} Rejected",
        _summary(req) + f"<p>Reason: <i>{escape(reason or '')}</i></p>"
    )


def sent_back(req: FundRequest, comments: Optional[str]) -> str:
    return _layout(
        "#FF9800",
        f"Request #{req.id} sent back for changes",
        _summary(req) +
        f"<p>Comments: <i>{escape(comments or '')}</i></p>"
        "<p>Please update the request and resubmit it.</p>"
    )
