"""Google Sheets record source for the event tables."""
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from eventgraph.table import Table

logger = logging.getLogger(__name__)

ODS_MIME_TYPE = 'application/vnd.oasis.opendocument.spreadsheet'


class GoogleSheetsSource:
    """Fetches the spreadsheet tables through the Sheets v4 REST API."""

    SHEETS_URL = "https://sheets.googleapis.com/v4/spreadsheets"
    DRIVE_URL = "https://www.googleapis.com/drive/v3/files"
    MAX_RETRIES = 3
    BASE_DELAY = 1  # seconds

    def __init__(self, sheet_id: str, api_key: str, timeout: int = 30):
        """
        Initialize the sheets source.

        Args:
            sheet_id: ID of the Google spreadsheet
            api_key: Google API key with Sheets and Drive access
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.sheet_id = sheet_id
        self.api_key = api_key
        self.timeout = timeout
        self.session = requests.Session()

    @property
    def sheet_url(self) -> str:
        """Browser URL of the spreadsheet."""
        return f"https://docs.google.com/spreadsheets/d/{self.sheet_id}"

    def list_sheets(self) -> List[str]:
        """
        Fetch the titles of all sheets.

        Returns:
            Sheet titles in spreadsheet order
        """
        response = self._get(
            f"{self.SHEETS_URL}/{self.sheet_id}",
            params={'fields': 'sheets(properties(sheetId,title))'}
        )
        payload = response.json()
        return [sheet['properties']['title'] for sheet in payload.get('sheets', [])]

    def fetch_table(self, title: str) -> Table:
        """
        Fetch one sheet as a Table.

        Args:
            title: Sheet title

        Returns:
            Table whose columns come from the first row

        Raises:
            NormalizationError: If the sheet is empty or has duplicate column titles
        """
        cell_range = quote(f"{title}!A1:Z", safe='')
        response = self._get(f"{self.SHEETS_URL}/{self.sheet_id}/values/{cell_range}")
        values = response.json().get('values', [])
        logger.info(f"Fetched {len(values)} rows from sheet '{title}'")
        return Table.from_values(title, values)

    def fetch_tables(self) -> Dict[str, Table]:
        """
        Fetch every sheet except the ones marked "ignore".

        Returns:
            Dictionary mapping sheet title to Table
        """
        tables = {}
        for title in self.list_sheets():
            if 'ignore' in title:
                continue
            tables[title] = self.fetch_table(title)
        return tables

    def export_spreadsheet(self) -> bytes:
        """
        Download the whole spreadsheet as an ODS file.

        Returns:
            ODS file content
        """
        response = self._get(
            f"{self.DRIVE_URL}/{self.sheet_id}/export",
            params={'mimeType': ODS_MIME_TYPE}
        )
        logger.info(f"Exported spreadsheet {self.sheet_id} ({len(response.content)} bytes)")
        return response.content

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """
        GET with API key and retry logic.

        Args:
            url: Request URL
            params: Additional query parameters

        Returns:
            Successful response

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        query = dict(params or {})
        query['key'] = self.api_key

        for attempt in range(self.MAX_RETRIES):
            try:
                logger.debug(f"GET {url} (attempt {attempt + 1}/{self.MAX_RETRIES})")
                response = self.session.get(url, params=query, timeout=self.timeout)
                response.raise_for_status()
                return response

            except requests.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} retry attempts failed. Last error: {e}"
                    )
                    raise
