"""
Tab selection for Event Tabs.

PURPOSE: Own the active-tab state machine over persisted query state.
AI CONTEXT: The query string is the single source of truth. Nothing here
keeps a private copy of `tab` or `sort`; every read goes to the QueryState.

RULES:
1. Visible tabs: clicks only, unless the workspace is in demo mode or is a
   beta tester, then clicks/leads/sales.
2. Active tab: persisted `tab`, falling back to clicks when unset, unknown,
   or hidden.
3. select_tab(): writes `tab`, and in the same write drops a `sort` that the
   new tab's table cannot sort by (sales: timestamp/amount, others: date).
4. Passive check: outside the sales tab any `sort` other than "timestamp"
   is dropped, whatever changed it.
5. Request shape depends on entitlement only; the tab picks which field of
   the composite response is drawn.

USAGE:
    state = QueryStringState("tab=sales&sort=amount&interval=30d")
    controller = TabSelectionController(state, Entitlement(beta_tester=True))
    controller.select_tab("clicks")
    state.to_query_string()  # 'tab=clicks&interval=30d'
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable
from urllib.parse import parse_qsl, urlencode

from .config import Config
from .models import Entitlement, EventCategory, QueryUpdate, RequestSpec

__all__ = [
    "QueryState",
    "QueryStringState",
    "SelectionState",
    "TabSelectionController",
    "build_request",
    "edit_query_string",
]

logger = logging.getLogger(__name__)


@runtime_checkable
class QueryState(Protocol):
    """
    Persisted query parameters (e.g. the page's shareable query string).

    Writes follow {set, del} semantics: keys in `set` overwrite, `delete`
    removes one key. There is no transactional merge beyond that.
    """

    def get(self, key: str) -> str | None:
        """Current value of a parameter, or None if absent."""
        ...

    def apply(self, update: QueryUpdate) -> None:
        """Apply one write."""
        ...

    def to_query_string(self) -> str:
        """Serialize to a URL query string (without leading '?')."""
        ...


class QueryStringState:
    """
    In-memory QueryState parsed from a URL query string.

    Keeps insertion order so rewritten URLs stay readable. Repeated keys
    collapse to their last value.
    """

    def __init__(self, query: str | Mapping[str, str] | Iterable[tuple[str, str]] = "") -> None:
        self._params: dict[str, str] = {}
        if isinstance(query, str):
            pairs: Iterable[tuple[str, str]] = parse_qsl(query.lstrip("?"), keep_blank_values=True)
        elif isinstance(query, Mapping):
            pairs = query.items()
        else:
            pairs = query
        for key, value in pairs:
            self._params[str(key)] = str(value)

    def get(self, key: str) -> str | None:
        return self._params.get(key)

    def apply(self, update: QueryUpdate) -> None:
        for key, value in update.set.items():
            self._params[key] = value
        if update.delete is not None:
            self._params.pop(update.delete, None)

    def to_query_string(self) -> str:
        return urlencode(self._params)

    def __repr__(self) -> str:
        return f"QueryStringState({self.to_query_string()!r})"


def edit_query_string(query: str, overrides: Mapping[str, str]) -> str:
    """
    Merge parameters into a query string, overrides winning.

    Example:
        >>> edit_query_string("interval=7d&event=leads", {"event": "clicks"})
        'interval=7d&event=clicks'
    """
    state = QueryStringState(query)
    state.apply(QueryUpdate(set=dict(overrides)))
    return state.to_query_string()


def build_request(
    active_tab: str,
    has_composite_entitlement: bool,
    timezone: str | None = None,
) -> RequestSpec:
    """
    Derive the timeseries request shape.

    Business context: Only entitled workspaces can query leads and sales.
    They get one composite request carrying all three counts per bucket;
    everyone else asks for clicks. Switching tabs therefore never issues a
    new request, it just reads another field of the same response.

    Args:
        active_tab: Currently active category. Deliberately not part of the
            request shape.
        has_composite_entitlement: Demo or beta-tester workspace.
        timezone: Bucket alignment zone. Defaults to Config.get_timezone().

    Returns:
        RequestSpec with group_by "timeseries".

    Example:
        >>> build_request("sales", False, "UTC").event
        'clicks'
        >>> build_request("clicks", True, "UTC").event
        'composite'
    """
    del active_tab
    return RequestSpec(
        event="composite" if has_composite_entitlement else "clicks",
        timezone=timezone or Config.get_timezone(),
    )


class SelectionState:
    """
    Read-through view of {active_tab, sort_field} over a QueryState.

    Holds only a reference to the underlying state, never the values, so
    it cannot drift from what another writer persisted.
    """

    def __init__(self, query: QueryState, visible_tabs: tuple[str, ...]) -> None:
        self._query = query
        self._visible_tabs = visible_tabs

    @property
    def active_tab(self) -> str:
        """Persisted tab, or the default when unset/unknown/hidden."""
        category = EventCategory.parse(self._query.get(Config.TAB_PARAM))
        if category is None or category.value not in self._visible_tabs:
            return Config.DEFAULT_TAB
        return category.value

    @property
    def sort_field(self) -> str | None:
        """Persisted sort field, None when unset or blank."""
        return self._query.get(Config.SORT_PARAM) or None


class TabSelectionController:
    """
    Active-tab state machine with sort repair and request shaping.

    STATES: one per visible category. The state itself lives in the
    QueryState; the controller reads it, and writes only through
    QueryUpdate.
    """

    def __init__(self, query: QueryState, entitlement: Entitlement | None = None) -> None:
        """
        Bind the controller to persisted state and workspace capabilities.

        Args:
            query: Persisted query parameters, shared with every other
                reader/writer of the page state.
            entitlement: Workspace capabilities. Defaults to the Config
                (environment) values.
        """
        self.query = query
        self.entitlement = entitlement or Entitlement(
            demo=Config.is_demo(),
            beta_tester=Config.is_beta_tester(),
        )

    @property
    def visible_tabs(self) -> tuple[str, ...]:
        """Tabs shown to this workspace, in display order."""
        if self.entitlement.has_composite:
            return Config.CATEGORIES
        return Config.BASIC_CATEGORIES

    @property
    def selection(self) -> SelectionState:
        """Fresh read-through view of the current selection."""
        return SelectionState(self.query, self.visible_tabs)

    @property
    def active_tab(self) -> str:
        """Currently active category."""
        return self.selection.active_tab

    def select_tab(self, category: str) -> QueryUpdate:
        """
        Activate a tab, dropping a sort field the new tab cannot use.

        Business context: Only the sales table has an `amount` column.
        Carrying `sort=amount` into the clicks view would ask the table for
        a field it does not have, so the sort is cleared in the same write
        that switches the tab.

        Args:
            category: Category to activate; must be visible.

        Returns:
            The QueryUpdate that was applied.

        Raises:
            ValueError: If the category is unknown or hidden for this
                workspace.

        Example:
            >>> state = QueryStringState("tab=sales&sort=amount")
            >>> controller = TabSelectionController(state, Entitlement(demo=True))
            >>> controller.select_tab("clicks").delete
            'sort'
        """
        parsed = EventCategory.parse(category)
        if parsed is None or parsed.value not in self.visible_tabs:
            raise ValueError(f"Tab not available: {category!r}")

        valid_sorts = Config.sort_options_for(parsed.value)
        current_sort = self.selection.sort_field
        delete = Config.SORT_PARAM if current_sort and current_sort not in valid_sorts else None

        update = QueryUpdate(set={Config.TAB_PARAM: parsed.value}, delete=delete)
        self.query.apply(update)
        if delete:
            logger.info("Cleared sort %r invalid for tab %s", current_sort, parsed.value)
        return update

    def enforce_sort_invariant(self) -> bool:
        """
        Passive consistency check, run on every render.

        Outside the sales tab, any sort other than "timestamp" is removed.
        This covers sort changes that did not go through select_tab().

        Returns:
            True if the sort parameter was removed.
        """
        selection = self.selection
        sort_field = selection.sort_field
        if selection.active_tab == "sales" or sort_field is None:
            return False
        if sort_field == Config.PRESERVED_SORT:
            return False
        self.query.apply(QueryUpdate(delete=Config.SORT_PARAM))
        logger.info("Cleared sort %r outside sales tab", sort_field)
        return True

    def build_request(self) -> RequestSpec:
        """Request shape for the current selection and entitlement."""
        return build_request(self.active_tab, self.entitlement.has_composite)
