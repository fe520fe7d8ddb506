"""
PantryPal Email Service
Templated SMTP delivery for password resets and contact-form messages
"""

import re
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid
from typing import Optional, List, Dict, Any, Union
import jinja2
from pathlib import Path
import aiosmtplib
from datetime import datetime
import logging

from core.config import get_settings
from models.users import User

settings = get_settings()
logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "emails"


class EmailService:
    def __init__(self):
        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME or None
        self.smtp_password = settings.SMTP_PASSWORD or None
        self.from_email = settings.FROM_EMAIL
        self.from_name = settings.FROM_NAME or "PantryPal"

        # Initialize Jinja2 template environment
        self.template_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(TEMPLATE_DIR),
            autoescape=jinja2.select_autoescape(['html', 'xml'])
        )

        # Email templates
        self.templates = {
            'password_reset': 'password_reset.html',
            'contact_admin': 'contact_admin.html',
            'contact_confirmation': 'contact_confirmation.html',
        }

    async def send_email(
        self,
        to_email: Union[str, List[str]],
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send email using async SMTP

        Args:
            to_email: Recipient email(s)
            subject: Email subject
            html_content: HTML email content
            text_content: Plain text content (optional)
            reply_to: Reply-to address

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            message = MIMEMultipart('alternative')
            message['Subject'] = subject
            message['From'] = f"{self.from_name} <{self.from_email}>"

            if isinstance(to_email, str):
                message['To'] = to_email
                recipients = [to_email]
            else:
                message['To'] = ', '.join(to_email)
                recipients = list(to_email)

            if reply_to:
                message['Reply-To'] = reply_to

            message['Message-ID'] = make_msgid()
            message['Date'] = formatdate(localtime=True)

            if text_content:
                message.attach(MIMEText(text_content, 'plain', 'utf-8'))
            message.attach(MIMEText(html_content, 'html', 'utf-8'))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_server,
                port=self.smtp_port,
                username=self.smtp_username,
                password=self.smtp_password,
                use_tls=settings.SMTP_USE_TLS,
                start_tls=settings.SMTP_START_TLS if not settings.SMTP_USE_TLS else False,
                recipients=recipients
            )

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}")
            return False

    def _render_template(
        self,
        template_name: str,
        context: Dict[str, Any]
    ) -> tuple[str, str]:
        """
        Render email template

        Returns:
            Tuple of (html_content, text_content)
        """
        template = self.template_env.get_template(template_name)

        context = {
            **context,
            'app_name': settings.APP_NAME,
            'current_year': datetime.now().year,
            'website_url': settings.FRONTEND_URL,
        }

        html_content = template.render(**context)
        return html_content, self._html_to_text(html_content)

    def _html_to_text(self, html_content: str) -> str:
        """Convert HTML to plain text (simplified)"""
        text = re.sub(r'<[^>]+>', '', html_content)

        text = text.replace('&nbsp;', ' ')
        text = text.replace('&lt;', '<')
        text = text.replace('&gt;', '>')
        text = text.replace('&quot;', '"')
        text = text.replace('&#34;', '"')
        text = text.replace('&#39;', "'")
        text = text.replace('&amp;', '&')

        return re.sub(r'\s+', ' ', text).strip()

    async def send_password_reset_email(self, user: User, reset_url: str) -> bool:
        """Send password reset email"""
        try:
            context = {
                'user_name': user.name,
                'reset_url': reset_url,
                'token_expiry': f"{settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES} minutes",
            }

            html_content, text_content = self._render_template(
                self.templates['password_reset'], context
            )

            return await self.send_email(
                to_email=user.email,
                subject=f"Reset your {settings.APP_NAME} password",
                html_content=html_content,
                text_content=text_content
            )

        except jinja2.TemplateError as e:
            logger.error(f"Failed to send password reset email to {user.email}: {e}")
            return False

    async def send_contact_message(self, name: str, email: str, message: str) -> bool:
        """Forward a contact-form message to the team and confirm receipt to the sender"""
        try:
            context = {
                'sender_name': name,
                'sender_email': email,
                'message': message,
            }

            admin_html, admin_text = self._render_template(
                self.templates['contact_admin'], context
            )
            delivered = await self.send_email(
                to_email=settings.CONTACT_RECEIVER or self.from_email,
                subject=f"New contact message from {name}",
                html_content=admin_html,
                text_content=admin_text,
                reply_to=email
            )
            if not delivered:
                return False

            confirm_html, confirm_text = self._render_template(
                self.templates['contact_confirmation'], context
            )
            return await self.send_email(
                to_email=email,
                subject=f"We received your message - {settings.APP_NAME}",
                html_content=confirm_html,
                text_content=confirm_text
            )

        except jinja2.TemplateError as e:
            logger.error(f"Failed to send contact message from {email}: {e}")
            return False


# Global email service instance
email_service = EmailService()
