"""Graph view session: one mounted view's model, layout and interaction state."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, FrozenSet, Optional, Tuple

from graphview.config import AppConfig
from graphview.contracts import GraphDataset, Node, Point
from graphview.filtering.view_filter import DisplayedGraph, ViewFilter, apply_view_filter, available_node_types
from graphview.interaction.highlight import Highlight, compute_highlight
from graphview.interaction.intents import DragEnd, DragMove, DragStart, Hover, Intent, Pan, Select, Zoom
from graphview.interaction.transform import ViewTransform
from graphview.layout.scheduler import SimulationLoop, run_until_settled
from graphview.layout.simulation import ForceSimulation, SimulationState
from graphview.model.normalizer import GraphNormalizer, MalformedDatasetError, NormalizationWarning
from graphview.utils.fetch import FetchResult

LOGGER = logging.getLogger(__name__)

EMPTY_RESULT_MESSAGE = "No matching nodes"
NO_DATA_MESSAGE = "No graph data available"
LOADING_MESSAGE = "Loading graph..."

SelectCallback = Callable[[Optional[Node]], None]
FilterChoiceCallback = Callable[[str, Optional[str]], None]
HoverCallback = Callable[[Optional[Node]], None]


class ViewStatus(str, Enum):
    """What the view is currently showing."""

    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    NO_DATA = "no_data"
    ERROR = "error"


@dataclass(frozen=True)
class HoverInfo:
    """Transient tooltip content for the hovered node."""

    node_id: str
    label: str
    type: str
    fields: Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session used by renderers and the host API."""

    status: ViewStatus
    message: Optional[str]
    displayed: DisplayedGraph
    state: Optional[SimulationState]
    transform: ViewTransform
    highlight: Highlight
    hover: Optional[HoverInfo]
    topic_node_ids: FrozenSet[str]
    view_filter: ViewFilter
    show_pathways: bool
    clusters_visible: bool
    dragging: Optional[str] = None


_EMPTY_DISPLAY = DisplayedGraph(nodes=(), edges=())


class GraphViewSession:
    """Own the canonical model, displayed set, simulation and view transform of one view.

    Every pointer intent goes through :meth:`dispatch`. Whenever the displayed
    set changes, the running simulation is torn down (pending ticks cancelled)
    before a new one is started at full temperature. Host callbacks are the
    only side effects visible outside the session.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        normalizer: Optional[GraphNormalizer] = None,
        loop: Optional[SimulationLoop] = None,
        on_select: Optional[SelectCallback] = None,
        on_filter_choice: Optional[FilterChoiceCallback] = None,
        on_hover: Optional[HoverCallback] = None,
    ) -> None:
        self._config = config
        self._normalizer = normalizer or GraphNormalizer.from_config(config.dataset)
        self._loop = loop
        self._on_select = on_select
        self._on_filter_choice = on_filter_choice
        self._on_hover = on_hover

        self._status = ViewStatus.LOADING
        self._message: Optional[str] = LOADING_MESSAGE
        self._dataset: Optional[GraphDataset] = None
        self._warnings: Tuple[NormalizationWarning, ...] = ()
        self._variant: Optional[str] = None
        self._filter = ViewFilter(
            max_nodes=config.view.max_nodes,
            searchable_fields=tuple(config.view.searchable_metadata_fields),
        )
        self._show_pathways = config.view.show_pathways
        self._displayed = _EMPTY_DISPLAY
        self._simulation: Optional[ForceSimulation] = None
        self._state: Optional[SimulationState] = None
        self._transform = ViewTransform.identity(config.view)
        self._selected_id: Optional[str] = None
        self._hover: Optional[HoverInfo] = None
        self._drag_node_id: Optional[str] = None
        self._topic_node_ids: FrozenSet[str] = frozenset()
        self._total_ticks = 0

    # ------------------------------------------------------------------ state

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def status(self) -> ViewStatus:
        return self._status

    @property
    def message(self) -> Optional[str]:
        return self._message

    @property
    def dataset(self) -> Optional[GraphDataset]:
        return self._dataset

    @property
    def warnings(self) -> Tuple[NormalizationWarning, ...]:
        return self._warnings

    @property
    def variant(self) -> Optional[str]:
        return self._variant

    @property
    def displayed(self) -> DisplayedGraph:
        return self._displayed

    @property
    def state(self) -> Optional[SimulationState]:
        return self._state

    @property
    def simulation(self) -> Optional[ForceSimulation]:
        return self._simulation

    @property
    def transform(self) -> ViewTransform:
        return self._transform

    @property
    def view_filter(self) -> ViewFilter:
        return self._filter

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def dragging(self) -> Optional[str]:
        return self._drag_node_id

    @property
    def hover(self) -> Optional[HoverInfo]:
        return self._hover

    @property
    def total_ticks(self) -> int:
        """Ticks issued across every simulation this session has run."""

        return self._total_ticks

    def highlight(self) -> Highlight:
        return compute_highlight(self._displayed, self._selected_id)

    def node_type_choices(self) -> list[str]:
        if self._dataset is None:
            return ["all"]
        return available_node_types(self._dataset)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            status=self._status,
            message=self._message,
            displayed=self._displayed,
            state=self._state,
            transform=self._transform,
            highlight=self.highlight(),
            hover=self._hover,
            topic_node_ids=self._topic_node_ids,
            view_filter=self._filter,
            show_pathways=self._show_pathways,
            clusters_visible=bool(self._dataset is not None and self._dataset.clusters),
            dragging=self._drag_node_id,
        )

    # ------------------------------------------------------------- lifecycle

    def begin_loading(self) -> None:
        """Mark a fetch as in flight; the current graph stays displayed."""

        self._status = ViewStatus.LOADING
        self._message = LOADING_MESSAGE

    def load_payload(self, payload: Any) -> bool:
        """Normalize ``payload`` and make it the canonical model.

        A malformed payload never partially applies: the previous model is
        dropped, the view shows the no-data state and no simulation runs.

        Returns:
            bool: ``True`` when the payload was accepted.
        """

        try:
            normalized = self._normalizer.normalize(payload)
        except MalformedDatasetError as exc:
            LOGGER.warning("Rejected malformed dataset: %s", exc)
            self._clear_model()
            self._status = ViewStatus.NO_DATA
            self._message = f"{NO_DATA_MESSAGE}: {exc}"
            return False
        self._warnings = normalized.warnings
        self._variant = normalized.variant
        self.load_dataset(normalized.dataset)
        return True

    def load_dataset(self, dataset: GraphDataset) -> None:
        """Replace the canonical model and recompute the displayed set."""

        self._dataset = dataset
        self._topic_node_ids = frozenset()
        self._refresh(force_restart=True)

    def apply_fetch(self, result: FetchResult) -> bool:
        """Apply the outcome of a dataset fetch.

        A failed fetch only changes the status; the graph shown before, and
        its simulation, stay as they were until :meth:`reset` is called.
        """

        if not result.ok:
            LOGGER.warning("Keeping previous graph after fetch failure: %s", result.detail)
            self._status = ViewStatus.ERROR
            self._message = result.detail
            return False
        return self.load_payload(result.payload)

    def reset(self) -> None:
        """Drop the model, the layout and any selection."""

        self._clear_model()
        self._status = ViewStatus.NO_DATA
        self._message = NO_DATA_MESSAGE

    def _clear_model(self) -> None:
        self._cancel_loop()
        self._dataset = None
        self._warnings = ()
        self._variant = None
        self._displayed = _EMPTY_DISPLAY
        self._simulation = None
        self._state = None
        self._drag_node_id = None
        self._hover = None
        self._topic_node_ids = frozenset()
        self._set_selection(None)

    # ---------------------------------------------------------------- filter

    def set_filter(self, view_filter: ViewFilter) -> None:
        """Apply a new view filter; the simulation restarts only if the displayed set changes."""

        previous = self._filter
        self._filter = view_filter
        if previous.active_cluster_id != view_filter.active_cluster_id and self._on_filter_choice:
            self._on_filter_choice("cluster", view_filter.active_cluster_id)
        if previous.active_pathway_id != view_filter.active_pathway_id and self._on_filter_choice:
            self._on_filter_choice("pathway", view_filter.active_pathway_id)
        self._refresh(force_restart=False)

    def update_filter(self, **changes: Any) -> None:
        self.set_filter(replace(self._filter, **changes))

    def choose_cluster(self, cluster_id: Optional[str]) -> None:
        self.update_filter(active_cluster_id=cluster_id)

    def choose_pathway(self, pathway_id: Optional[str]) -> None:
        self.update_filter(active_pathway_id=pathway_id)

    def set_show_pathways(self, show: bool) -> None:
        self._show_pathways = show

    def _refresh(self, *, force_restart: bool) -> None:
        if self._dataset is None:
            return
        displayed = apply_view_filter(self._dataset, self._filter)
        changed = displayed != self._displayed
        self._displayed = displayed
        if displayed.is_empty:
            self._status = ViewStatus.EMPTY
            self._message = EMPTY_RESULT_MESSAGE
        else:
            self._status = ViewStatus.READY
            self._message = None
        if self._selected_id is not None and displayed.node_by_id(self._selected_id) is None:
            self._set_selection(None)
        if self._hover is not None and displayed.node_by_id(self._hover.node_id) is None:
            self._hover = None
        if changed or force_restart:
            self._restart_simulation()

    def _restart_simulation(self) -> None:
        self._cancel_loop()
        self._drag_node_id = None
        previous = self._state if self._config.layout.reuse_positions else None
        if self._displayed.is_empty:
            self._simulation = None
            self._state = None
            LOGGER.debug("Displayed set is empty; no simulation started")
            return
        self._simulation = ForceSimulation(
            self._displayed,
            self._config.layout,
            width=self._config.view.width,
            height=self._config.view.height,
        )
        self._state = self._simulation.initial_state(previous)
        self._schedule()

    # ------------------------------------------------------------ simulation

    def needs_ticks(self) -> bool:
        if self._simulation is None or self._state is None:
            return False
        return not self._simulation.is_settled(self._state)

    def advance(self, ticks: int) -> int:
        """Issue up to ``ticks`` simulation ticks; stops early once settled."""

        performed = 0
        while performed < ticks and self.needs_ticks():
            self._state = self._simulation.step(self._state)  # type: ignore[union-attr, arg-type]
            performed += 1
        self._total_ticks += performed
        return performed

    def settle(self, max_ticks: int = 10_000) -> int:
        """Tick headlessly until the layout settles; returns the ticks issued."""

        return run_until_settled(self, max_ticks=max_ticks)

    def fit_to_view(self) -> ViewTransform:
        if self._state is not None:
            view = self._config.view
            self._transform = self._transform.fit(
                self._state.bounds(), view.width, view.height, view.fit_padding_ratio
            )
        return self._transform

    def _schedule(self) -> None:
        if self._loop is None or self._loop.running or not self.needs_ticks():
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running event loop; simulation will be ticked by the caller")
            return
        self._loop.start(self)

    def _cancel_loop(self) -> None:
        if self._loop is not None:
            self._loop.cancel()

    # ----------------------------------------------------------- interaction

    def dispatch(self, intent: Intent) -> SessionSnapshot:
        """Apply one intent and return the resulting snapshot.

        Intents naming a node outside the displayed set, or carrying values the
        view cannot apply, are ignored with a warning.
        """

        try:
            self._reduce(intent)
        except KeyError as exc:
            LOGGER.warning("Ignoring %s for unknown node %s", type(intent).__name__, exc)
        except ValueError as exc:
            LOGGER.warning("Ignoring invalid %s: %s", type(intent).__name__, exc)
        return self.snapshot()

    def _reduce(self, intent: Intent) -> None:
        if isinstance(intent, DragStart):
            self._drag_start(intent.node_id, intent.point)
        elif isinstance(intent, DragMove):
            self._drag_move(intent.point)
        elif isinstance(intent, DragEnd):
            self._drag_end()
        elif isinstance(intent, Select):
            self._select(intent.node_id)
        elif isinstance(intent, Hover):
            self._hover_node(intent.node_id)
        elif isinstance(intent, Zoom):
            self._transform = self._transform.zoom_at(intent.factor, intent.anchor)
        elif isinstance(intent, Pan):
            self._transform = self._transform.pan(intent.dx, intent.dy)
        else:
            raise TypeError(f"Unsupported intent: {intent!r}")

    def _require_simulation(self) -> Tuple[ForceSimulation, SimulationState]:
        if self._simulation is None or self._state is None:
            raise KeyError("no displayed nodes")
        return self._simulation, self._state

    def _drag_start(self, node_id: str, point: Point) -> None:
        simulation, state = self._require_simulation()
        state = simulation.pin(state, node_id, self._transform.invert(point))
        self._state = simulation.reheat(state)
        self._drag_node_id = node_id
        self._schedule()

    def _drag_move(self, point: Point) -> None:
        if self._drag_node_id is None:
            LOGGER.debug("Ignoring drag move without an active drag")
            return
        simulation, state = self._require_simulation()
        self._state = simulation.pin(state, self._drag_node_id, self._transform.invert(point))
        self._schedule()

    def _drag_end(self) -> None:
        if self._drag_node_id is None:
            return
        simulation, state = self._require_simulation()
        node_id, self._drag_node_id = self._drag_node_id, None
        self._state = simulation.cool(simulation.unpin(state, node_id))

    def _select(self, node_id: Optional[str]) -> None:
        if node_id is not None and self._displayed.node_by_id(node_id) is None:
            raise KeyError(node_id)
        self._set_selection(node_id)

    def _set_selection(self, node_id: Optional[str]) -> None:
        if node_id == self._selected_id:
            return
        self._selected_id = node_id
        if self._on_select is not None:
            self._on_select(self._displayed.node_by_id(node_id) if node_id is not None else None)

    def _hover_node(self, node_id: Optional[str]) -> None:
        if node_id is None:
            self._hover = None
            node = None
        else:
            node = self._displayed.node_by_id(node_id)
            if node is None:
                raise KeyError(node_id)
            self._hover = self._hover_info(node)
        if self._on_hover is not None:
            self._on_hover(node)

    def _hover_info(self, node: Node) -> HoverInfo:
        fields = []
        for name in self._config.view.tooltip_metadata_fields:
            value = node.metadata.get(name)
            if value is None or isinstance(value, (list, dict)):
                continue
            fields.append((name, str(value)))
        return HoverInfo(node_id=node.id, label=node.label, type=node.type, fields=tuple(fields))

    def highlight_topic(self, topic: Optional[str]) -> FrozenSet[str]:
        """Mark displayed nodes whose expertise topics mention ``topic``.

        A blank topic clears the marking.
        """

        needle = (topic or "").strip().lower()
        if not needle:
            self._topic_node_ids = frozenset()
            return self._topic_node_ids
        matches = set()
        for node in self._displayed.nodes:
            topics = node.metadata.get("expertise_topics")
            if not isinstance(topics, list):
                continue
            if any(isinstance(item, str) and needle in item.lower() for item in topics):
                matches.add(node.id)
        self._topic_node_ids = frozenset(matches)
        return self._topic_node_ids
