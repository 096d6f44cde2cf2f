"""
Email service for sending account-lifecycle emails.

Supports SMTP, Resend API, and console logging modes. Send failures are
logged and reported in the returned dict; they are never raised to callers.
"""

import html
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

import httpx
import aiosmtplib

from config.email_config import (
    RESEND_API_URL,
    RESEND_TIMEOUT_SECONDS,
    EMAIL_DEFAULTS,
    EMAIL_SUBJECTS,
)

logger = logging.getLogger(__name__)


class EmailService:
    """
    Email service with multi-mode support.

    Modes:
        - console: Log emails to console (development)
        - smtp: Send via SMTP
        - resend: Send via Resend HTTP API
    """

    def __init__(
        self,
        mode: Optional[str] = None,
        base_url: str = "http://localhost:8000",
        api_prefix: str = "/api/v1",
        resend_api_key: Optional[str] = None,
        from_email: str = "noreply@example.com",
        from_name: Optional[str] = None,
        team_name: Optional[str] = None,
        smtp_host: Optional[str] = None,
        smtp_port: int = 465,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
    ):
        """
        Initialize email service.

        Args:
            mode: "console", "smtp", or "resend"
            base_url: Public URL of this service, used for email links
            api_prefix: Route prefix the auth router is mounted under
            resend_api_key: Resend API key
            from_email: Sender email address
            from_name: Sender display name
            team_name: Team name for email signatures
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
        """
        self._mode = mode or EMAIL_DEFAULTS["mode"]
        self._links_base = f"{base_url.rstrip('/')}{api_prefix}/auth"
        self._resend_api_key = resend_api_key
        self._from_email = from_email
        self._from_name = from_name or EMAIL_DEFAULTS["from_name"]
        self._team_name = team_name or EMAIL_DEFAULTS["team_name"]
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._smtp_user = smtp_user
        self._smtp_password = smtp_password

        if self._mode == "resend" and not self._resend_api_key:
            logger.warning("Resend API key not configured, falling back to console mode")
            self._mode = "console"
        elif self._mode == "smtp" and not self._smtp_host:
            logger.warning("SMTP host not configured, falling back to console mode")
            self._mode = "console"

        logger.info(f"Email service initialized in {self._mode} mode")

    @property
    def mode(self) -> str:
        return self._mode

    def verification_link(self, token: str) -> str:
        """Build the link that redeems an email-verification token."""
        return f"{self._links_base}/verify-email?token={token}"

    def reset_link(self, token: str) -> str:
        """Build the link that redeems a password-reset token."""
        return f"{self._links_base}/reset-password?token={token}"

    async def send_verification_email(
        self,
        to_email: str,
        user_name: Optional[str],
        token: str,
    ) -> dict:
        """
        Send the email-verification link.

        Args:
            to_email: Recipient email address
            user_name: Display name used in the greeting
            token: Raw verification token

        Returns:
            dict with success status and message
        """
        link = self.verification_link(token)
        html_content, text_content = self._render(
            header="Verify your email",
            name=user_name,
            body="Thanks for signing up! Please verify your email address by clicking the button below:",
            button=("Verify Email", link),
            notice="If you didn't create an account, you can safely ignore this email.",
        )
        return await self._send(
            to=to_email,
            subject=EMAIL_SUBJECTS["verification"],
            html=html_content,
            text=text_content,
        )

    async def send_password_reset_email(
        self,
        to_email: str,
        user_name: Optional[str],
        token: str,
    ) -> dict:
        """
        Send the password-reset link.

        Args:
            to_email: Recipient email address
            user_name: Display name used in the greeting
            token: Raw reset token

        Returns:
            dict with success status and message
        """
        link = self.reset_link(token)
        html_content, text_content = self._render(
            header="Reset your password",
            name=user_name,
            body="We received a request to reset your password. This link is valid for one hour:",
            button=("Reset Password", link),
            notice="If you didn't request a password reset, you can safely ignore this email.",
        )
        return await self._send(
            to=to_email,
            subject=EMAIL_SUBJECTS["password_reset"],
            html=html_content,
            text=text_content,
        )

    async def send_password_reset_success_email(
        self,
        to_email: str,
        user_name: Optional[str],
    ) -> dict:
        """Tell the account owner their password was changed."""
        html_content, text_content = self._render(
            header="Password Reset Successful",
            name=user_name,
            body=(
                "Your password has been successfully reset and all devices have been signed out. "
                "If you did not initiate this action, please secure your account immediately."
            ),
            button=None,
            notice="If this was you, you can safely ignore this message.",
        )
        return await self._send(
            to=to_email,
            subject=EMAIL_SUBJECTS["password_reset_success"],
            html=html_content,
            text=text_content,
        )

    def _render(
        self,
        header: str,
        name: Optional[str],
        body: str,
        button: Optional[tuple],
        notice: str,
    ) -> tuple:
        """Build the (html, text) bodies shared by all lifecycle emails."""
        greeting = f"Hi {name or 'there'},"

        button_html = ""
        button_text = ""
        if button:
            label, link = button
            safe_link = html.escape(link, quote=True)
            button_html = f"""
                            <table role="presentation" cellpadding="0" cellspacing="0" style="margin: 24px auto;">
                                <tr>
                                    <td align="center" bgcolor="#2D4A47" style="background-color: #2D4A47; border-radius: 8px;">
                                        <a href="{safe_link}" target="_blank" style="display: inline-block; padding: 14px 28px; font-size: 16px; font-weight: 600; color: #ffffff; text-decoration: none;">{label}</a>
                                    </td>
                                </tr>
                            </table>
                            <p style="margin: 24px 0 8px 0; font-size: 14px; color: #666666;">Or copy and paste this link into your browser:</p>
                            <p style="margin: 0 0 24px 0; font-size: 14px; color: #2D4A47; word-break: break-all;">{safe_link}</p>"""
            button_text = f"\n{link}\n"

        html_content = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; background-color: #f5f5f5; font-family: Arial, sans-serif; line-height: 1.6; color: #333333;">
    <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color: #f5f5f5;">
        <tr>
            <td align="center" style="padding: 20px 0;">
                <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; max-width: 600px;">
                    <tr>
                        <td align="center" bgcolor="#2D4A47" style="background-color: #2D4A47; padding: 40px 20px;">
                            <h1 style="margin: 0; font-size: 28px; color: #ffffff; font-weight: 600;">{header}</h1>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 40px 30px;">
                            <p style="margin: 0 0 16px 0; font-size: 16px;">{html.escape(greeting)}</p>
                            <p style="margin: 0 0 24px 0; font-size: 16px;">{body}</p>{button_html}
                            <p style="margin: 0; font-size: 14px; color: #666666;">{notice}</p>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 20px 30px; border-top: 1px solid #eeeeee;">
                            <p style="margin: 0; font-size: 14px; color: #666666; text-align: center;">Best regards,<br>{self._team_name}</p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
"""

        text_content = f"""
{header}

{greeting}

{body}
{button_text}
{notice}

Best regards,
{self._team_name}
"""
        return html_content, text_content

    async def _send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """
        Send email via configured provider.

        Returns:
            dict with success status and details
        """
        if self._mode == "console":
            return self._send_console(to, subject, html, text)
        elif self._mode == "smtp":
            return await self._send_smtp(to, subject, html, text)
        elif self._mode == "resend":
            return await self._send_resend(to, subject, html, text)
        else:
            logger.error(f"Unknown email mode: {self._mode}")
            return {"success": False, "error": f"Unknown email mode: {self._mode}"}

    def _send_console(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """Log email to console (development mode)."""
        logger.info("=" * 60)
        logger.info("EMAIL (console mode)")
        logger.info(f"To: {to}")
        logger.info(f"Subject: {subject}")
        logger.info("-" * 60)
        logger.info(text)
        logger.info("=" * 60)

        return {
            "success": True,
            "mode": "console",
            "message": "Email logged to console",
        }

    async def _send_smtp(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """Send email via SMTP."""
        try:
            message = MIMEMultipart("alternative")
            message["Subject"] = subject
            message["From"] = f"{self._from_name} <{self._from_email}>"
            message["To"] = to

            message.attach(MIMEText(text, "plain"))
            message.attach(MIMEText(html, "html"))

            # Port 465 is implicit TLS; anything else upgrades with STARTTLS
            use_tls = self._smtp_port == 465

            await aiosmtplib.send(
                message,
                hostname=self._smtp_host,
                port=self._smtp_port,
                username=self._smtp_user,
                password=self._smtp_password,
                use_tls=use_tls,
                start_tls=not use_tls,
            )

            logger.info(f"Email sent via SMTP to {to}")
            return {
                "success": True,
                "mode": "smtp",
                "message": "Email sent via SMTP",
            }

        except Exception as e:
            logger.error(f"Failed to send email via SMTP: {e}")
            return {
                "success": False,
                "error": str(e),
            }

    async def _send_resend(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """Send email via Resend API."""
        async with httpx.AsyncClient(timeout=RESEND_TIMEOUT_SECONDS) as client:
            try:
                response = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self._resend_api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": f"{self._from_name} <{self._from_email}>",
                        "to": [to],
                        "subject": subject,
                        "html": html,
                        "text": text,
                    },
                )

                if response.status_code == 200:
                    data = response.json()
                    return {
                        "success": True,
                        "mode": "resend",
                        "messageId": data.get("id"),
                    }
                else:
                    error_msg = response.json().get("message", "Unknown error")
                    logger.error(f"Resend API error: {error_msg}")
                    return {
                        "success": False,
                        "error": error_msg,
                    }

            except Exception as e:
                logger.error(f"Failed to send email via Resend: {e}")
                return {
                    "success": False,
                    "error": str(e),
                }
