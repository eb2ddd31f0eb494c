"""
Reusable email templates.

Every transactional email shares one HTML layout (header, greeting, body,
call-to-action button, footer) and has a plain text fallback. Per-type
content lives in ``TEMPLATES`` as jinja2 source; amounts and dates go through
the shared formatters so emails match what the app displays.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jinja2 import Environment, Template, select_autoescape
from markupsafe import Markup

from email_service.core.config import settings
from email_service.core.formatting import format_currency, format_datetime
from email_service.schemas.email import EmailType, RenderedEmail, normalize_email_type


@dataclass(frozen=True)
class EmailTemplate:
    content: str
    text: str
    button_text: str = ""
    button_url: str = ""
    additional_info: str = ""


STATIC_SUBJECTS: Dict[EmailType, str] = {
    EmailType.VERIFICATION: "Verify your {brand} account",
    EmailType.WELCOME: "Welcome to {brand}!",
    EmailType.PASSWORD_RESET: "Reset your {brand} password",
    EmailType.PASSWORD_CHANGED: "Your {brand} password was changed",
    EmailType.TWO_FACTOR_ENABLED: "Two-factor authentication enabled",
    EmailType.TWO_FACTOR_DISABLED: "Two-factor authentication disabled",
    EmailType.WAGER_INVITATION: "You've been invited to a wager on {brand}",
    EmailType.QUIZ_INVITATION: "You've been invited to a quiz on {brand}",
    EmailType.WAGER_SETTLEMENT: "Your wager has been settled",
    EmailType.WAGER_JOINED: "Someone joined your wager",
    EmailType.BALANCE_UPDATE: "Your {brand} balance was updated",
    EmailType.QUIZ_SETTLEMENT: "Your quiz results are in",
}

_LINK_FALLBACK = """
<p style="font-size: 14px; color: #666666; margin-top: 24px;">
  If the button doesn't work, copy and paste this link into your browser:<br>
  <a href="{{ button_url }}" style="color: #0070f3; word-break: break-all;">{{ button_url }}</a>
</p>
"""

_CONTACT_SUPPORT = """
<p style="font-size: 14px; color: #666666; margin-top: 24px;">
  If you have any questions, feel free to reach out to us at
  <a href="mailto:{{ support_email }}" style="color: #0070f3;">{{ support_email }}</a>
</p>
"""

_SECURITY_WARNING = """
<p style="color: #d32f2f; font-size: 14px; margin-top: 24px;">
  <strong>If you didn't {{ security_action }}, please contact us immediately at
  <a href="mailto:{{ support_email }}" style="color: #0070f3;">{{ support_email }}</a></strong>
</p>
"""

TEMPLATES: Dict[EmailType, EmailTemplate] = {
    EmailType.VERIFICATION: EmailTemplate(
        content="""
<p>Thanks for signing up for {{ brand }}! To get started, please verify your email address by clicking the button below.</p>
<p>This link will expire in 24 hours for security reasons.</p>
""",
        button_text="Verify Email Address",
        button_url="{{ verification_url or app_url ~ '/verify-email' }}",
        additional_info=_LINK_FALLBACK,
        text="""Hi {{ name }},

Thanks for signing up for {{ brand }}! To get started, please verify your email address by visiting:

{{ button_url }}

This link will expire in 24 hours.""",
    ),
    EmailType.WELCOME: EmailTemplate(
        content="""
<p>Welcome to {{ brand }}! We're excited to have you join our community.</p>
<p>You can now create wagers, join exciting challenges, and compete with others. Get started by exploring available wagers or creating your own!</p>
""",
        button_text="Get Started",
        button_url="{{ login_url or app_url ~ '/wagers' }}",
        additional_info=_CONTACT_SUPPORT,
        text="""Hi {{ name }},

Welcome to {{ brand }}! We're excited to have you join our community.

Get started: {{ button_url }}""",
    ),
    EmailType.PASSWORD_RESET: EmailTemplate(
        content="""
<p>We received a request to reset your password for your {{ brand }} account.</p>
<p>Click the button below to reset your password. This link will expire in 1 hour for security reasons.</p>
{% if reset_code %}
<p style="background-color: #f5f5f5; padding: 12px; border-radius: 6px; font-family: monospace; font-size: 18px; text-align: center; margin: 20px 0;">
  <strong>Reset Code:</strong> {{ reset_code }}
</p>
{% endif %}
<p style="color: #d32f2f; font-size: 14px;"><strong>If you didn't request this, please ignore this email and your password will remain unchanged.</strong></p>
""",
        button_text="Reset Password",
        button_url="{{ reset_url or app_url ~ '/reset-password' }}",
        additional_info=_LINK_FALLBACK,
        text="""Hi {{ name }},

We received a request to reset your password. Visit:

{{ button_url }}
{% if reset_code %}
Reset Code: {{ reset_code }}
{% endif %}
This link expires in 1 hour.

If you didn't request this, please ignore this email.""",
    ),
    EmailType.PASSWORD_CHANGED: EmailTemplate(
        content="""
<p>Your {{ brand }} account password was successfully changed.</p>
<p><strong>Date:</strong> {{ change_date | datetime }}</p>
""",
        button_text="Go to Account",
        button_url="{{ app_url }}/profile",
        additional_info=_SECURITY_WARNING,
        text="""Hi {{ name }},

Your {{ brand }} password was successfully changed on {{ change_date | datetime }}.

If you didn't make this change, please contact us immediately.""",
    ),
    EmailType.TWO_FACTOR_ENABLED: EmailTemplate(
        content="""
<p>Two-factor authentication has been enabled for your {{ brand }} account.</p>
<p>Your account is now more secure. You'll be asked for a verification code each time you sign in.</p>
""",
        button_text="Manage Security",
        button_url="{{ app_url }}/profile",
        additional_info=_SECURITY_WARNING,
        text="""Hi {{ name }},

Two-factor authentication has been enabled for your {{ brand }} account.

If you didn't enable this, please contact us immediately.""",
    ),
    EmailType.TWO_FACTOR_DISABLED: EmailTemplate(
        content="""
<p>Two-factor authentication has been disabled for your {{ brand }} account.</p>
<p>Your account security has been reduced. You can re-enable 2FA anytime from your profile settings.</p>
""",
        button_text="Manage Security",
        button_url="{{ app_url }}/profile",
        additional_info=_SECURITY_WARNING,
        text="""Hi {{ name }},

Two-factor authentication has been disabled for your {{ brand }} account.

If you didn't disable this, please contact us immediately.""",
    ),
    EmailType.WAGER_INVITATION: EmailTemplate(
        content="""
<p><strong>{{ inviter_name or 'A friend' }}</strong> invited you to join a wager on {{ brand }}:</p>
<p style="font-size: 18px;"><strong>{{ wager_title }}</strong></p>
{% if wager_description %}<p>{{ wager_description }}</p>{% endif %}
{% if side_a and side_b %}<p><strong>Sides:</strong> {{ side_a }} vs {{ side_b }}</p>{% endif %}
{% if amount is defined and amount is not none %}<p><strong>Stake:</strong> {{ amount | currency(currency) }}</p>{% endif %}
{% if deadline %}<p><strong>Deadline:</strong> {{ deadline | datetime }}</p>{% endif %}
""",
        button_text="View Wager",
        button_url="{{ wager_url or app_url ~ '/wagers' }}",
        additional_info=_CONTACT_SUPPORT,
        text="""Hi {{ name }},

{{ inviter_name or 'A friend' }} invited you to join a wager on {{ brand }}: "{{ wager_title }}".
{% if side_a and side_b %}Sides: {{ side_a }} vs {{ side_b }}
{% endif %}{% if amount is defined and amount is not none %}Stake: {{ amount | currency(currency) }}
{% endif %}{% if deadline %}Deadline: {{ deadline | datetime }}
{% endif %}
Join now: {{ button_url }}""",
    ),
    EmailType.QUIZ_INVITATION: EmailTemplate(
        content="""
<p><strong>{{ inviter_name or 'A friend' }}</strong> invited you to take part in a quiz on {{ brand }}:</p>
<p style="font-size: 18px;"><strong>{{ quiz_title }}</strong></p>
{% if quiz_description %}<p>{{ quiz_description }}</p>{% endif %}
{% if entry_fee is defined and entry_fee is not none %}<p><strong>Entry fee:</strong> {{ entry_fee | currency(currency) }}</p>{% endif %}
{% if question_count %}<p><strong>Questions:</strong> {{ question_count }}</p>{% endif %}
{% if deadline %}<p><strong>Ends:</strong> {{ deadline | datetime }}</p>{% endif %}
""",
        button_text="Take the Quiz",
        button_url="{{ quiz_url or app_url ~ '/quizzes' }}",
        additional_info=_CONTACT_SUPPORT,
        text="""Hi {{ name }},

{{ inviter_name or 'A friend' }} invited you to a quiz on {{ brand }}: "{{ quiz_title }}".
{% if entry_fee is defined and entry_fee is not none %}Entry fee: {{ entry_fee | currency(currency) }}
{% endif %}{% if deadline %}Ends: {{ deadline | datetime }}
{% endif %}
Take the quiz: {{ button_url }}""",
    ),
    EmailType.WAGER_SETTLEMENT: EmailTemplate(
        content="""
{% if refunded %}
<p>The wager <strong>{{ wager_title }}</strong> closed without an opponent, so your stake has been refunded to your wallet.</p>
{% elif won %}
<p>Congratulations! You won the wager <strong>{{ wager_title }}</strong>.</p>
<p><strong>Winnings:</strong> {{ (amount or 0) | currency(currency) }} has been credited to your wallet.</p>
{% else %}
<p>The wager <strong>{{ wager_title }}</strong> has been settled and your side did not win this time.</p>
{% if amount %}<p><strong>Stake:</strong> {{ amount | currency(currency) }}</p>{% endif %}
{% endif %}
""",
        button_text="View Wager",
        button_url="{{ wager_url or app_url ~ '/wagers' }}",
        text="""Hi {{ name }},

{% if refunded %}The wager "{{ wager_title }}" closed without an opponent and your stake was refunded.{% elif won %}You won the wager "{{ wager_title }}"! {{ (amount or 0) | currency(currency) }} has been credited to your wallet.{% else %}The wager "{{ wager_title }}" has been settled and your side did not win this time.{% endif %}

View the wager: {{ button_url }}""",
    ),
    EmailType.WAGER_JOINED: EmailTemplate(
        content="""
<p>Your wager <strong>{{ wager_title }}</strong> is picking up steam.</p>
<p>{{ participant_count }} {{ 'person has' if participant_count == 1 else 'people have' }} joined so far.</p>
""",
        button_text="View Wager",
        button_url="{{ wager_url or app_url ~ '/wagers' }}",
        text="""Hi {{ name }},

{{ participant_count }} {{ 'person has' if participant_count == 1 else 'people have' }} joined your wager "{{ wager_title }}".

View the wager: {{ button_url }}""",
    ),
    EmailType.BALANCE_UPDATE: EmailTemplate(
        content="""
<p>{{ transaction_summary }}</p>
<p><strong>Amount:</strong> {{ amount | currency(currency) }}</p>
{% if balance is defined and balance is not none %}<p><strong>New balance:</strong> {{ balance | currency(currency) }}</p>{% endif %}
""",
        button_text="Open Wallet",
        button_url="{{ wallet_url or app_url ~ '/wallet' }}",
        text="""Hi {{ name }},

{{ transaction_summary }}
Amount: {{ amount | currency(currency) }}
{% if balance is defined and balance is not none %}New balance: {{ balance | currency(currency) }}
{% endif %}
Open your wallet: {{ button_url }}""",
    ),
    EmailType.QUIZ_SETTLEMENT: EmailTemplate(
        content="""
<p>The quiz <strong>{{ quiz_title }}</strong> has been settled.</p>
{% if rank %}<p><strong>Your rank:</strong> #{{ rank }}</p>{% endif %}
{% if won %}
<p>Congratulations! {{ (amount or 0) | currency(currency) }} has been credited to your wallet.</p>
{% else %}
<p>You didn't place in the winnings this time. Better luck on the next one!</p>
{% endif %}
""",
        button_text="View Results",
        button_url="{{ quiz_url or app_url ~ '/quizzes' }}",
        text="""Hi {{ name }},

The quiz "{{ quiz_title }}" has been settled.
{% if rank %}Your rank: #{{ rank }}
{% endif %}{% if won %}You won {{ (amount or 0) | currency(currency) }}!{% else %}You didn't place in the winnings this time.{% endif %}

View results: {{ button_url }}""",
    ),
}

LAYOUT_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ subject }}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #f5f5f5;">
  <table role="presentation" style="width: 100%; border-collapse: collapse;">
    <tr>
      <td style="padding: 40px 20px; text-align: center;">
        <table role="presentation" style="max-width: 600px; margin: 0 auto; background-color: #ffffff; border-radius: 8px;">
          <tr>
            <td style="padding: 40px 40px 20px; text-align: center; background: #0070f3; border-radius: 8px 8px 0 0;">
              <h1 style="margin: 0; color: #ffffff; font-size: 28px; font-weight: 700;">{{ brand }}</h1>
            </td>
          </tr>
          <tr>
            <td style="padding: 40px; text-align: left; {{ base_styles }}">
              <h2 style="margin: 0 0 20px; font-size: 24px; color: #1a1a1a;">{{ subject }}</h2>
              <p style="margin: 0 0 16px; font-size: 16px;">Hi {{ name }},</p>
              <div style="font-size: 16px;">{{ content }}</div>
              {% if button_url %}
              <div style="text-align: center; margin: 32px 0;">
                <a href="{{ button_url }}" style="{{ button_styles }}">{{ button_text }}</a>
              </div>
              {% endif %}
              {{ additional_info }}
              <hr style="border: none; border-top: 1px solid #e0e0e0; margin: 32px 0;">
              <p style="margin: 0; font-size: 14px; color: #666666;">Best regards,<br>The {{ brand }} Team</p>
            </td>
          </tr>
          <tr>
            <td style="padding: 20px 40px; text-align: center; background-color: #f9f9f9; border-radius: 0 0 8px 8px;">
              <p style="margin: 0 0 8px; font-size: 12px; color: #999999;">This email was sent to {{ recipient_email }}</p>
              <p style="margin: 0; font-size: 12px; color: #999999;">&copy; {{ year }} {{ brand }}. All rights reserved.</p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>"""

LAYOUT_TEXT = """{{ body }}

Best regards,
The {{ brand }} Team"""

BASE_STYLES = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; "
    "line-height: 1.6; color: #333333;"
)

BUTTON_STYLES = (
    "display: inline-block; padding: 12px 24px; background-color: #0070f3; color: #ffffff; "
    "text-decoration: none; border-radius: 6px; font-weight: 600;"
)

BALANCE_SUMMARIES = {
    "deposit": "Your deposit was successful.",
    "withdrawal": "Your withdrawal has been processed.",
    "wager_win": "Congratulations! Your winnings have been credited.",
    "wager_loss": "A wager stake has been deducted from your balance.",
}


def get_email_subject(
    email_type: Any,
    data: Optional[Dict[str, Any]] = None,
    custom_subject: Optional[str] = None,
    brand: Optional[str] = None,
    default_currency: Optional[str] = None,
) -> str:
    """Resolve the subject line: caller override, then a data-aware default."""
    if custom_subject:
        return custom_subject

    email_type = normalize_email_type(email_type)
    data = data or {}
    brand = brand or settings.BRAND_NAME
    currency = data.get("currency") or default_currency or settings.DEFAULT_CURRENCY

    def money(key: str) -> str:
        return format_currency(data.get(key) or 0, currency)

    if email_type == EmailType.WAGER_SETTLEMENT and data.get("wager_title"):
        title = data["wager_title"]
        if data.get("refunded"):
            return f'Your stake on "{title}" was refunded'
        if data.get("won"):
            return f'🎉 You won {money("amount")} on "{title}"!'
        return f'😔 Oops, you lost the bet on "{title}"'

    if email_type == EmailType.QUIZ_SETTLEMENT and data.get("quiz_title"):
        title = data["quiz_title"]
        if data.get("won"):
            return f'🎉 You won {money("amount")} in "{title}"!'
        return f'Results are in for "{title}"'

    if email_type == EmailType.WAGER_JOINED and data.get("wager_title"):
        count = int(data.get("participant_count") or 1)
        joined = "person has" if count == 1 else "people have"
        return f'{count} {joined} joined "{data["wager_title"]}"'

    if email_type == EmailType.BALANCE_UPDATE and data.get("transaction_type"):
        kind = data["transaction_type"]
        amount = money("amount")
        if kind == "wager_win":
            return f"🎉 You won {amount}!"
        if kind == "deposit":
            return f"Deposit of {amount} successful"
        if kind == "withdrawal":
            return f"Withdrawal of {amount} processed"
        return f"Balance update: {amount}"

    if email_type == EmailType.WAGER_INVITATION and data.get("inviter_name") and data.get("wager_title"):
        return f'{data["inviter_name"]} invited you to a wager: "{data["wager_title"]}"'

    if email_type == EmailType.QUIZ_INVITATION and data.get("inviter_name") and data.get("quiz_title"):
        return f'{data["inviter_name"]} invited you to a quiz: "{data["quiz_title"]}"'

    return STATIC_SUBJECTS.get(email_type, f"{brand} notification").format(brand=brand)


class EmailTemplateRenderer:
    """Renders subject, HTML and plain text bodies for every EmailType."""

    def __init__(
        self,
        brand: Optional[str] = None,
        app_url: Optional[str] = None,
        support_email: Optional[str] = None,
        default_currency: Optional[str] = None,
    ):
        self.brand = brand or settings.BRAND_NAME
        self.app_url = (app_url or settings.APP_URL).rstrip("/")
        self.support_email = support_email or settings.SUPPORT_EMAIL
        self.default_currency = default_currency or settings.DEFAULT_CURRENCY

        self._html_env = self._build_env(autoescape=select_autoescape(default_for_string=True))
        self._text_env = self._build_env(autoescape=False)
        self._layout_html = self._html_env.from_string(LAYOUT_HTML)
        self._layout_text = self._text_env.from_string(LAYOUT_TEXT)
        self._compiled: Dict[EmailType, Dict[str, Template]] = {
            email_type: self._compile(template) for email_type, template in TEMPLATES.items()
        }

    def _build_env(self, autoescape) -> Environment:
        env = Environment(autoescape=autoescape, trim_blocks=True)
        env.filters["currency"] = lambda amount, code=None: format_currency(
            amount or 0, code or self.default_currency
        )
        env.filters["datetime"] = format_datetime
        return env

    def _compile(self, template: EmailTemplate) -> Dict[str, Template]:
        return {
            "content": self._html_env.from_string(template.content),
            "additional_info": self._html_env.from_string(template.additional_info),
            "button_url": self._text_env.from_string(template.button_url),
            "text": self._text_env.from_string(template.text),
        }

    def render(
        self,
        email_type: Any,
        data: Optional[Dict[str, Any]],
        recipient: str,
        subject: Optional[str] = None,
    ) -> RenderedEmail:
        email_type = normalize_email_type(email_type)
        payload = dict(data or {})
        resolved_subject = get_email_subject(
            email_type, payload, subject, brand=self.brand, default_currency=self.default_currency
        )

        context: Dict[str, Any] = {
            **payload,
            "brand": self.brand,
            "app_url": self.app_url,
            "support_email": self.support_email,
            "recipient_email": recipient,
            "name": payload.get("recipient_name") or recipient.split("@")[0],
            "subject": resolved_subject,
            "year": datetime.now(timezone.utc).year,
            "currency": payload.get("currency") or self.default_currency,
            "change_date": payload.get("change_date") or datetime.now(timezone.utc),
            "security_action": _security_action(email_type),
            "transaction_summary": BALANCE_SUMMARIES.get(
                payload.get("transaction_type"), "Your balance has been updated."
            ),
        }

        compiled = self._compiled[email_type]
        context["button_url"] = compiled["button_url"].render(context).strip()
        context["button_text"] = TEMPLATES[email_type].button_text

        html = self._layout_html.render({
            **context,
            "content": Markup(compiled["content"].render(context)),
            "additional_info": Markup(compiled["additional_info"].render(context)),
            "base_styles": BASE_STYLES,
            "button_styles": BUTTON_STYLES,
        })
        text = self._layout_text.render(body=compiled["text"].render(context).strip(), brand=self.brand)

        return RenderedEmail(to=recipient, subject=resolved_subject, html=html, text=text)


def _security_action(email_type: EmailType) -> str:
    return {
        EmailType.PASSWORD_CHANGED: "make this change",
        EmailType.TWO_FACTOR_ENABLED: "enable this",
        EmailType.TWO_FACTOR_DISABLED: "disable this",
    }.get(email_type, "request this")
