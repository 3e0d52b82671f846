"""
Read-path transport for the spreadsheet query endpoint.

Queries are sent as HTTP GET requests to

    https://docs.google.com/spreadsheets/d/<spreadsheet id>/gviz/tq

with the worksheet name, the query text and the number of header rows as
parameters, authorized with a bearer token. The raw response body (the
callback-framed envelope) is returned for the parser to decode.
"""

import logging
from typing import Callable, Optional

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request

from sheetrecords.exceptions import TransportError

logger = logging.getLogger(__name__)

GVIZ_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/gviz/tq"


class GvizTransport:
    """Runs query-dialect strings against one worksheet.

    Attributes:
        spreadsheet_id: Key of the spreadsheet
        sheet_name: Title of the worksheet to query
        token_provider: Callable returning a current OAuth access token
        session: HTTP session used for requests
        header_rows: Number of header rows the endpoint should honor
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        token_provider: Callable[[], str],
        session: Optional[requests.Session] = None,
        header_rows: int = 1,
        timeout: float = 30.0,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.token_provider = token_provider
        self.session = session or requests.Session()
        self.header_rows = header_rows
        self.timeout = timeout

    @property
    def url(self) -> str:
        return GVIZ_URL.format(spreadsheet_id=self.spreadsheet_id)

    def fetch(self, tq: str) -> str:
        """Run query ``tq`` and return the raw envelope text.

        Raises:
            TransportError: On connection failures or a non-200 status
        """
        params = {"sheet": self.sheet_name, "tq": tq, "headers": self.header_rows}
        try:
            headers = {"Authorization": f"Bearer {self.token_provider()}"}
        except GoogleAuthError as e:
            raise TransportError(f"Could not obtain an access token: {e}") from e

        try:
            response = self.session.get(self.url, params=params, headers=headers,
                                        timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Query request failed: {e}") from e

        if response.status_code != 200:
            raise TransportError(
                f"Query endpoint returned HTTP {response.status_code} for sheet "
                f"'{self.sheet_name}'",
                status_code=response.status_code,
            )

        logger.debug("Query %r returned %d bytes", tq, len(response.text))
        return response.text


def token_provider_from_gspread(gc: gspread.Client) -> Callable[[], str]:
    """Build a token provider from an authenticated gspread client.

    The client's google-auth credentials are refreshed whenever they are no
    longer valid.
    """
    credentials = gc.http_client.auth

    def provide() -> str:
        if not credentials.valid:
            credentials.refresh(Request())
        return credentials.token

    return provide
