"""Carregamento gradual dos postes no mapa.

A coleção inteira entra na camada em lotes: 1200 por lote com a página
visível, 3500 com a página em segundo plano. Cada lote é uma tarefa do
`IdleScheduler`, e o lote seguinte só é agendado quando o anterior roda. No
app, uma barra de progresso é atualizada entre um lote e outro.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from postes_map.core.config import settings

if TYPE_CHECKING:
    from postes_map.data.models import Poste
    from postes_map.ui.markers import ClusterLayer, MarkerCache
    from postes_map.ui.popup import PinnedPopupController

logger = logging.getLogger(__name__)


class IdleScheduler:
    """Fila FIFO de tarefas adiadas, executadas uma por vez."""

    def __init__(self) -> None:
        self._queue: deque[Callable[[], None]] = deque()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def schedule(self, task: Callable[[], None]) -> None:
        self._queue.append(task)

    def run_next(self) -> bool:
        if not self._queue:
            return False
        task = self._queue.popleft()
        task()
        return True

    def drain(self, on_step: Callable[[], None] | None = None) -> int:
        """Executa até a fila esvaziar (tarefas podem agendar outras)."""
        steps = 0
        while self.run_next():
            steps += 1
            if on_step is not None:
                on_step()
        return steps


class IncrementalLoader:
    def __init__(
        self,
        cache: MarkerCache,
        layer: ClusterLayer,
        popup: PinnedPopupController,
        scheduler: IdleScheduler,
        batch_size: int | None = None,
        hidden_batch_size: int | None = None,
    ) -> None:
        self._cache = cache
        self._layer = layer
        self._popup = popup
        self._scheduler = scheduler
        self.batch_size = batch_size or settings.loader_batch_size
        self.hidden_batch_size = hidden_batch_size or settings.loader_hidden_batch_size

        self._postes: Sequence[Poste] = ()
        self._cursor = 0
        self._batch = self.batch_size
        self.all_loaded = False
        self.in_flight = False

    def reset(self, postes: Sequence[Poste]) -> None:
        """Nova coleção: o próximo `load_all` recomeça do zero."""
        self._postes = postes
        self._cursor = 0
        self.all_loaded = False
        self.in_flight = False

    @property
    def total(self) -> int:
        return len(self._postes)

    @property
    def loaded(self) -> int:
        return min(self._cursor, len(self._postes))

    @property
    def progress(self) -> float:
        if not self._postes:
            return 1.0
        return self.loaded / len(self._postes)

    def load_all(self, is_visible: bool = True) -> None:
        if self.all_loaded:
            self.show_all()
            return
        if self.in_flight:
            logger.debug("Carregamento já em andamento; ignorando")
            return

        self.in_flight = True
        self._cursor = 0
        self._batch = self.batch_size if is_visible else self.hidden_batch_size
        logger.info("Carregamento gradual: %d postes, lotes de %d", len(self._postes), self._batch)
        self._scheduler.schedule(self._add_chunk)

    def _add_chunk(self) -> None:
        chunk = self._postes[self._cursor : self._cursor + self._batch]
        markers = [self._cache.get_or_create(p) for p in chunk]
        if markers:
            self._layer.add_layers(markers)
        self._cursor += self._batch

        if self._cursor < len(self._postes):
            self._scheduler.schedule(self._add_chunk)
            return

        self.all_loaded = True
        self.in_flight = False
        self._popup.resynchronize()
        logger.info("Carregamento concluído: %d marcadores", len(self._layer))

    def show_all(self) -> None:
        """Redesenho barato: todos os marcadores já criados, sem criar nenhum."""
        self._layer.clear_layers()
        self._layer.add_layers(self._cache.values())
        self._popup.resynchronize()
