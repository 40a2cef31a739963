"""
Adapter pour les notifications.

Les alertes de stock bas partent vers l'équipe achats. Le domaine
ne connaît que `send(destination, message)` ; le transport (SMTP ici)
reste un détail d'infrastructure, remplacé par un fake dans les tests.
"""

from __future__ import annotations

import abc
import logging
import smtplib
from email.message import EmailMessage

from inventory import config

logger = logging.getLogger(__name__)


class AbstractNotifications(abc.ABC):
    @abc.abstractmethod
    def send(self, destination: str, message: str) -> None:
        raise NotImplementedError


class EmailNotifications(AbstractNotifications):
    """Envoi par SMTP, paramétré par l'environnement (voir config)."""

    subject = "[Stock] Alerte de stock bas"

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        sender: str | None = None,
    ):
        self.smtp_host = smtp_host or config.get_smtp_host()
        self.smtp_port = smtp_port or config.get_smtp_port()
        self.sender = sender or config.get_alert_sender()

    def build(self, destination: str, message: str) -> EmailMessage:
        email = EmailMessage()
        email["From"] = self.sender
        email["To"] = destination
        email["Subject"] = self.subject
        email.set_content(message)
        return email

    def send(self, destination: str, message: str) -> None:
        logger.debug("Envoi d'une alerte à %s via %s:%s", destination, self.smtp_host, self.smtp_port)
        with smtplib.SMTP(self.smtp_host, self.smtp_port) as smtp:
            smtp.send_message(self.build(destination, message))
