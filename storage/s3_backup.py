"""S3 storage for spreadsheet backups."""
import logging
from datetime import date
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError

from sheets.google_sheets import ODS_MIME_TYPE

logger = logging.getLogger(__name__)


class SheetBackupManager:
    """Stores dated ODS exports of the spreadsheet in an S3 bucket."""

    def __init__(self, bucket: str, prefix: str = 'backups/'):
        """
        Initialize S3 client and bucket reference.

        Args:
            bucket: Name of the S3 bucket
            prefix: Key prefix for all backups
        """
        self.bucket = bucket
        self.prefix = prefix
        self.s3 = boto3.client('s3')
        logger.info(f"Initialized SheetBackupManager for bucket: {bucket}")

    def backup_key(self, sheet_id: str, day: date) -> str:
        return f"{self.prefix}{sheet_id}/{day.isoformat()}.ods"

    def store(self, sheet_id: str, content: bytes, day: Optional[date] = None) -> str:
        """
        Upload one ODS export.

        Args:
            sheet_id: Spreadsheet ID, used in the key
            content: ODS file content
            day: Backup date (default: today)

        Returns:
            Key of the stored object

        Raises:
            ClientError: If the upload fails
        """
        key = self.backup_key(sheet_id, day or date.today())
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=ODS_MIME_TYPE
            )
        except ClientError as e:
            logger.error(f"Error uploading backup to s3://{self.bucket}/{key}: {e}")
            raise

        logger.info(f"Stored {len(content)} bytes at s3://{self.bucket}/{key}")
        return key

    def list_backups(self, sheet_id: str) -> List[str]:
        """
        List the keys of all backups of a spreadsheet, oldest first.

        Returns:
            Sorted list of object keys
        """
        keys = []
        try:
            paginator = self.s3.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=self.bucket, Prefix=f"{self.prefix}{sheet_id}/"):
                keys.extend(item['Key'] for item in page.get('Contents', []))
        except ClientError as e:
            logger.error(f"Error listing backups in bucket {self.bucket}: {e}")
            raise

        return sorted(keys)
