"""Transactional email via AWS SES (onboarding only; drafts are never emailed)."""
import logging
from typing import Optional
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from config import get_settings

logger = logging.getLogger(__name__)


class EmailService:
    """Thin SES wrapper. `send` reports success instead of raising."""

    def __init__(self, sender: Optional[str] = None, region: Optional[str] = None):
        settings = get_settings()
        self.sender = sender or settings.email_sender
        self.ses_client = boto3.client('ses', region_name=region or settings.aws_region)

    def send(self, to: str, subject: str, body: str) -> bool:
        try:
            self.ses_client.send_email(
                Source=self.sender,
                Destination={'ToAddresses': [to]},
                Message={
                    'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                    'Body': {'Text': {'Data': body, 'Charset': 'UTF-8'}},
                },
            )
            logger.info(f"Sent email '{subject}' to {to}")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False
