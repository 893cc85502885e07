from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .models import Account, Instrument, OrderDraft, Position


@dataclass
class SessionState:
    """Everything one trading session owns.

    The engine holds exactly one of these; components read and replace
    its fields between suspension points only, so no partially updated
    state is ever observable.
    """

    account: Optional[Account] = None
    positions: List[Position] = field(default_factory=list)
    last_positions_sync: Optional[datetime] = None
    last_positions_error: Optional[str] = None

    search_query: str = ""
    search_results: List[Instrument] = field(default_factory=list)
    last_search_error: Optional[str] = None

    draft: OrderDraft = field(default_factory=OrderDraft)

    @property
    def is_linked(self) -> bool:
        return self.account is not None and self.account.is_linked

    def clear_positions(self) -> None:
        self.positions = []
        self.last_positions_sync = None
        self.last_positions_error = None
