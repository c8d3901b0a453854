"""
Service d'envoi d'emails SMTP.
Utilisé pour transmettre les liens de réinitialisation de mot de passe.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import urlencode

from app.config import settings

logger = logging.getLogger(__name__)


def build_reset_link(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?{urlencode({'token': token})}"


def send_password_reset_email(to_email: str, user_name: str, token: str) -> None:
    """
    Envoie un email HTML contenant le lien de réinitialisation du mot de passe.
    Lève une exception en cas d'échec SMTP.
    """
    link = build_reset_link(token)
    minutes = settings.RESET_TOKEN_EXPIRE_MINUTES

    msg = MIMEMultipart("alternative")
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = "Réinitialisation de votre mot de passe"

    text_content = (
        f"Bonjour {user_name},\n\n"
        f"Pour choisir un nouveau mot de passe, ouvrez ce lien (valable {minutes} minutes) :\n"
        f"{link}\n\n"
        "Si vous n'êtes pas à l'origine de cette demande, ignorez ce message."
    )
    html_content = f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: auto;">
        <h2 style="color: #1a73e8;">Réinitialisation du mot de passe</h2>
        <p>Bonjour {user_name},</p>
        <p>
          Pour choisir un nouveau mot de passe, cliquez sur le lien ci-dessous.
          Il est valable <strong>{minutes} minutes</strong> et ne peut servir qu'une fois.
        </p>
        <p style="text-align: center; margin: 24px 0;">
          <a href="{link}" style="background: #1a73e8; color: #fff; padding: 12px 20px;
             text-decoration: none; border-radius: 4px;">Choisir un nouveau mot de passe</a>
        </p>
        <hr style="border: none; border-top: 1px solid #eee;" />
        <p style="font-size: 12px; color: #888;">
          Si vous n'êtes pas à l'origine de cette demande, ignorez ce message.
        </p>
      </body>
    </html>
    """

    msg.attach(MIMEText(text_content, "plain", "utf-8"))
    msg.attach(MIMEText(html_content, "html", "utf-8"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info("Email de réinitialisation envoyé à %s", to_email)
