"""SMTP delivery for invitation emails."""

import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

import structlog

logger = structlog.get_logger()

INVITATION_SUBJECT = "You're invited to join {team_name} on PromptStudio"

INVITATION_HTML = """\
<html>
  <body style="font-family: Helvetica, Arial, sans-serif; color: #1f2933;">
    <h2 style="margin-bottom: 8px;">Join {team_name}</h2>
    <p>{invited_by} to join <strong>{team_name}</strong> as <strong>{role}</strong>.</p>
    <p style="margin: 28px 0;">
      <a href="{accept_url}"
         style="background: #4f46e5; color: #fff; padding: 10px 20px;
                border-radius: 6px; text-decoration: none;">Accept invitation</a>
    </p>
    <p style="font-size: 13px; color: #52606d;">
      The link expires in 7 days and only works when signed in as {to_email}.
    </p>
  </body>
</html>
"""

INVITATION_TEXT = """\
Join {team_name}

{invited_by} to join {team_name} as {role}.

Accept the invitation: {accept_url}

The link expires in 7 days and only works when signed in as {to_email}.
"""


@dataclass
class EmailConfig:
    """SMTP connection settings."""

    smtp_host: str
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    from_email: str = "promptstudio@example.com"
    from_name: str = "PromptStudio"
    use_tls: bool = True


class EmailNotifier:
    """Sends multipart emails over SMTP.

    Blocking; async callers run it in a worker thread.
    """

    def __init__(self, config: EmailConfig):
        self.config = config

    def send(
        self,
        to_emails: list[str],
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> bool:
        """Send one message to all recipients.

        Returns:
            False when the SMTP exchange failed; the failure is logged.
        """
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.config.from_name} <{self.config.from_email}>"
        msg["To"] = ", ".join(to_emails)
        if body_text:
            msg.attach(MIMEText(body_text, "plain"))
        msg.attach(MIMEText(body_html, "html"))

        try:
            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port) as server:
                if self.config.use_tls:
                    server.starttls()
                if self.config.smtp_user and self.config.smtp_password:
                    server.login(self.config.smtp_user, self.config.smtp_password)
                server.sendmail(self.config.from_email, to_emails, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error("email_send_failed", recipients=len(to_emails), error=str(e))
            return False

        logger.info("email_sent", recipients=len(to_emails), subject=subject)
        return True

    def send_team_invitation(
        self,
        to_email: str,
        team_name: str,
        role: str,
        accept_url: str,
        inviter: str | None = None,
    ) -> bool:
        """Send the accept link for a team invitation."""
        invited_by = f"{inviter} invited you" if inviter else "You have been invited"
        body_html = INVITATION_HTML.format(
            team_name=escape(team_name),
            invited_by=escape(invited_by),
            role=escape(role),
            accept_url=escape(accept_url),
            to_email=escape(to_email),
        )
        body_text = INVITATION_TEXT.format(
            team_name=team_name,
            invited_by=invited_by,
            role=role,
            accept_url=accept_url,
            to_email=to_email,
        )
        return self.send(
            [to_email], INVITATION_SUBJECT.format(team_name=team_name), body_html, body_text
        )
