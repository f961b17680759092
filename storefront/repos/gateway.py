# storefront/repos/gateway.py
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

# codes shared by both backends, mirroring what the hosted api returns
DUPLICATE_KEY = "23505"
UNDEFINED_COLUMN = "42703"
UNDEFINED_TABLE = "42P01"
NO_ROWS = "PGRST116"
UNKNOWN_FUNCTION = "PGRST202"
NETWORK_ERROR = "NETWORK"

Filters = Dict[str, Any]
Ordering = Sequence[Tuple[str, bool]]  # (column, descending)


@dataclass
class GatewayError:
    code: str
    message: str

    @property
    def is_duplicate(self) -> bool:
        return self.code == DUPLICATE_KEY

    def __str__(self) -> str:
        return f"{self.message} ({self.code})"


@dataclass
class GatewayResult:
    data: Any = None
    error: Optional[GatewayError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, code: str, message: str) -> "GatewayResult":
        return cls(data=None, error=GatewayError(code=code, message=message))


class DataGateway:
    """
    Table-level access to the hosted store.

    Every call returns a GatewayResult instead of raising, so callers
    branch on ``result.error`` the same way regardless of backend.
    ``single=True`` turns the list result into one row and reports
    NO_ROWS when nothing matched.
    """

    def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: Ordering | None = None,
        limit: int | None = None,
        single: bool = False,
    ) -> GatewayResult:
        raise NotImplementedError

    def insert(self, table: str, rows: Dict[str, Any] | List[Dict[str, Any]], single: bool = False) -> GatewayResult:
        raise NotImplementedError

    def update(self, table: str, values: Dict[str, Any], filters: Filters, single: bool = False) -> GatewayResult:
        raise NotImplementedError

    def delete(self, table: str, filters: Filters) -> GatewayResult:
        raise NotImplementedError

    def upsert(self, table: str, row: Dict[str, Any], on_conflict: Iterable[str], single: bool = True) -> GatewayResult:
        raise NotImplementedError

    def rpc(self, fn: str, params: Dict[str, Any] | None = None) -> GatewayResult:
        raise NotImplementedError


def first_row(rows: List[Dict[str, Any]], single: bool) -> GatewayResult:
    if not single:
        return GatewayResult(data=rows)
    if not rows:
        return GatewayResult.failure(NO_ROWS, "The result contains 0 rows")
    return GatewayResult(data=rows[0])
