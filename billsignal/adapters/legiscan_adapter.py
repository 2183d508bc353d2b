"""
LegiScan API adapter for discovering and fetching bills.

Pulls session lists, master bill lists and full bill detail from the
LegiScan JSON API (api.legiscan.com) and normalizes bill detail into the
canonical Bill record.

Responsibility: Fetch and normalize bills from the LegiScan API
"""

from datetime import date
from typing import Any, Dict, Iterable, List, Optional
import httpx

from .base_adapter import BaseAdapter, utcnow
from ..config import LegiScanConfig
from ..exceptions import SourceError, SourceResponseError
from ..models.adapter_models import AdapterError, AdapterResponse
from ..models.bill import (
    Bill,
    BillSummary,
    LegislativeSession,
    Sponsor,
    UNKNOWN_STATUS_LABEL,
    chamber_from_code,
    parse_iso_date,
    status_label,
)


def derive_introduced_date(raw_bill: Dict[str, Any], today: Optional[date] = None) -> date:
    """
    Derive the introduction date from a LegiScan bill detail.

    History is newest-first. Important entries win; the last one is the
    earliest. With no history, fall back to the source's own introduced
    fields, then to today.
    """
    history = raw_bill.get("history")
    if isinstance(history, list) and history:
        important = [h for h in history if isinstance(h, dict) and h.get("importance")]
        entries = important or history
        derived = parse_iso_date(entries[-1].get("date")) if isinstance(entries[-1], dict) else None
        if derived:
            return derived

    for key in ("introduced_date", "introduced"):
        derived = parse_iso_date(raw_bill.get(key))
        if derived:
            return derived

    return today or utcnow().date()


def derive_last_action(raw_bill: Dict[str, Any]) -> str:
    """Most recent history action, or a synthesized one from the status"""
    history = raw_bill.get("history")
    if isinstance(history, list) and history and isinstance(history[0], dict):
        action = history[0].get("action")
        if action:
            return str(action)
    return f"Went into {status_label(raw_bill.get('status'), default=UNKNOWN_STATUS_LABEL)}"


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class LegiScanAdapter(BaseAdapter[Bill]):
    """
    Adapter for the LegiScan legislative data API.

    Key features:
    - Session discovery per jurisdiction, filtered by year
    - Master lists as cheap candidate listings (no detail fetch)
    - Full bill detail normalized into Bill
    - Every call throttled through the adapter's rate limiter

    Example:
        adapter = LegiScanAdapter(settings.legiscan)
        sessions = await adapter.list_sessions_covering_year("CA", 2025)
        summaries = await adapter.list_master_bills(sessions[0].session_id)
        detail = await adapter.fetch_bill_detail(summaries[0].external_id)
        bill = adapter.normalize(detail, jurisdiction="CA")
    """

    def __init__(
        self,
        config: LegiScanConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize LegiScan adapter.

        Args:
            config: LegiScan settings (API key, base URL, throttle)
            transport: Optional httpx transport (used by tests)
        """
        super().__init__(
            source_name="legiscan",
            throttle_ms=config.throttle_ms,
            timeout_seconds=config.timeout_seconds
        )
        self.base_url = config.base_url
        self._api_key = config.api_key or ""

        self.client = httpx.AsyncClient(
            timeout=self.timeout_seconds,
            headers={
                "User-Agent": "BillSignal/1.0",
                "Accept": "application/json"
            },
            follow_redirects=True,
            transport=transport
        )

    async def _call(self, operation: str, **params: Any) -> Dict[str, Any]:
        """
        Issue one throttled LegiScan operation and unwrap its envelope.

        Raises:
            httpx.HTTPError: Network failure or non-2xx response
            SourceResponseError: Response without status "OK"
        """
        await self.rate_limiter.acquire()

        self.logger.debug(f"GET op={operation} {params}")

        response = await self.client.get(
            self.base_url,
            params={"key": self._api_key, "op": operation, **params}
        )
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceResponseError(operation, f"invalid JSON: {e}") from e

        if not isinstance(payload, dict) or payload.get("status") != "OK":
            alert = payload.get("alert") if isinstance(payload, dict) else None
            message = alert.get("message") if isinstance(alert, dict) else None
            raise SourceResponseError(operation, message or "status is not OK")

        return payload

    async def list_sessions_covering_year(
        self,
        jurisdiction: str,
        year: int
    ) -> List[LegislativeSession]:
        """
        List sessions of a jurisdiction whose [year_start, year_end] includes year.

        Args:
            jurisdiction: Two-letter state code (e.g., "CA")
            year: Target year
        """
        payload = await self._call("getSessionList", state=jurisdiction)
        raw_sessions = payload.get("sessions")
        if not isinstance(raw_sessions, list):
            raise SourceResponseError("getSessionList", "missing sessions list")

        sessions: List[LegislativeSession] = []
        for raw in raw_sessions:
            if not isinstance(raw, dict):
                continue
            try:
                session = LegislativeSession(
                    session_id=raw["session_id"],
                    jurisdiction=jurisdiction,
                    year_start=raw["year_start"],
                    year_end=raw["year_end"],
                    name=raw.get("session_name") or raw.get("name"),
                )
            except (KeyError, ValueError) as e:
                self.logger.warning(f"Skipping malformed session for {jurisdiction}: {e}")
                continue
            if session.covers_year(year):
                sessions.append(session)

        self.logger.info(
            f"{jurisdiction}: {len(sessions)} of {len(raw_sessions)} sessions cover {year}"
        )
        return sessions

    async def list_master_bills(
        self,
        session_id: int,
        jurisdiction: Optional[str] = None
    ) -> List[BillSummary]:
        """
        List lightweight {external_id, status_date} entries for a session.

        Entries without an integer bill_id or a status_date are dropped, as
        is the master list's "session" metadata entry.
        """
        payload = await self._call("getMasterList", id=session_id)
        masterlist = payload.get("masterlist")
        if not isinstance(masterlist, dict):
            raise SourceResponseError("getMasterList", "missing masterlist")

        summaries: List[BillSummary] = []
        for key, entry in masterlist.items():
            if key == "session" or not isinstance(entry, dict):
                continue
            bill_id = entry.get("bill_id")
            status_date = parse_iso_date(entry.get("status_date"))
            if not _is_int(bill_id) or status_date is None:
                continue
            summaries.append(BillSummary(
                external_id=bill_id,
                status_date=status_date,
                jurisdiction=jurisdiction,
                number=entry.get("number"),
            ))

        self.logger.debug(f"Session {session_id}: {len(summaries)} master-list entries")
        return summaries

    async def fetch_bill_detail(self, external_id: int) -> Dict[str, Any]:
        """
        Fetch the full LegiScan record for one bill.

        This is the expensive call; callers check the store first.
        """
        payload = await self._call("getBill", id=external_id)
        bill = payload.get("bill")
        if not isinstance(bill, dict):
            raise SourceResponseError("getBill", f"no bill detail for {external_id}")
        return bill

    async def fetch(
        self,
        external_ids: Iterable[int] = (),
        jurisdiction: Optional[str] = None,
        **kwargs: Any
    ) -> AdapterResponse[Bill]:
        """
        Fetch and normalize detail for several bills.

        Each bill is fetched independently; one failing bill is recorded as
        an error and does not stop the rest.
        """
        start_time = utcnow()
        bills: List[Bill] = []
        errors: List[AdapterError] = []

        for external_id in external_ids:
            try:
                raw = await self.fetch_bill_detail(external_id)
                bills.append(self.normalize(raw, jurisdiction=jurisdiction))
            except (httpx.HTTPError, SourceError) as e:
                self.logger.warning(f"Detail fetch failed for bill {external_id}: {e}")
                errors.append(self._build_error(e, retryable=True, external_id=external_id))
            except ValueError as e:
                self.logger.warning(f"Failed to normalize bill {external_id}: {e}")
                errors.append(self._build_error(e, retryable=False, external_id=external_id))

        return self._build_success_response(data=bills, errors=errors, start_time=start_time)

    def normalize(
        self,
        raw_data: Dict[str, Any],
        jurisdiction: Optional[str] = None,
        **context: Any
    ) -> Bill:
        """
        Normalize a LegiScan bill detail into a Bill.

        Raises:
            ValueError: If bill_id is missing or not an integer
        """
        external_id = raw_data.get("bill_id")
        if not _is_int(external_id):
            raise ValueError(f"Bill detail has no integer bill_id: {external_id!r}")

        sponsors = raw_data.get("sponsors")
        first_sponsor = sponsors[0] if isinstance(sponsors, list) and sponsors else {}
        if not isinstance(first_sponsor, dict):
            first_sponsor = {}

        state = raw_data.get("state") or jurisdiction or ""

        return Bill(
            external_id=external_id,
            jurisdiction=jurisdiction or raw_data.get("state"),
            title=raw_data.get("title") or "",
            description=raw_data.get("description") or "",
            sponsor=Sponsor(
                name=first_sponsor.get("name") or "",
                party=first_sponsor.get("party"),
                state=state,
            ),
            introduced_date=derive_introduced_date(raw_data),
            last_action=derive_last_action(raw_data),
            last_action_date=parse_iso_date(raw_data.get("status_date")),
            status=status_label(raw_data.get("status")),
            chamber=chamber_from_code(raw_data.get("chamber") or raw_data.get("body")),
            document_url=raw_data.get("url") or None,
            raw_source_data=raw_data,
        )

    async def close(self):
        """Close HTTP client connection"""
        await self.client.aclose()
