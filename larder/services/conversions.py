"""
Unit conversions: the per-tenant UOM graph.

Every UnitConversion row is an edge. Rows come in mirrored pairs, so the
graph can be walked in both directions: the edge A→B weighs `factor`,
and B→A weighs `1/factor`. Indirect factors are the product of the edge
weights along the shortest path.

The adjacency map is cached per tenant and dropped on every write.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal

from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

from larder.conf import larder_settings
from larder.exceptions import BadRequest, Conflict, NotFound
from larder.models.uom import UnitConversion, UnitOfMeasure
from larder.quantities import factor as as_factor
from larder.quantities import qty, to_decimal

logger = logging.getLogger('larder')

ONE = Decimal('1')


@dataclass(frozen=True)
class ConversionPath:
    """How many `to_uom` one `from_uom` is worth, and through which units."""

    from_uom: UnitOfMeasure
    to_uom: UnitOfMeasure
    factor: Decimal
    is_direct: bool
    via: tuple[int, ...] = field(default=())


def _pk(uom) -> int:
    return uom.pk if isinstance(uom, UnitOfMeasure) else int(uom)


class UnitConversions:
    """Conversion graph reads and writes."""

    # ══════════════════════════════════════════════════════════════
    # GRAPH
    # ══════════════════════════════════════════════════════════════

    @staticmethod
    def cache_key(tenant) -> str:
        return f"larder:uom-graph:{tenant.pk}"

    @classmethod
    def graph(cls, tenant) -> dict[int, list[tuple[int, Decimal]]]:
        """Adjacency map {uom_pk: [(neighbour_pk, factor), ...]} for the tenant."""
        key = cls.cache_key(tenant)
        graph = cache.get(key)
        if graph is None:
            graph = cls._build_graph(tenant)
            cache.set(key, graph, larder_settings.GRAPH_CACHE_TIMEOUT)
        return graph

    @classmethod
    def _build_graph(cls, tenant) -> dict[int, list[tuple[int, Decimal]]]:
        graph: dict[int, list[tuple[int, Decimal]]] = {}

        def add_edge(a, b, weight):
            edges = graph.setdefault(a, [])
            if all(neighbour != b for neighbour, _ in edges):
                edges.append((b, weight))

        rows = (
            UnitConversion.objects.for_tenant(tenant)
            .order_by('pk')
            .values_list('from_uom_id', 'to_uom_id', 'factor')
        )
        for from_id, to_id, weight in rows:
            add_edge(from_id, to_id, weight)
            add_edge(to_id, from_id, ONE / weight)
        return graph

    @classmethod
    def invalidate(cls, tenant) -> None:
        key = cls.cache_key(tenant)
        cache.delete(key)
        # A read inside the writing transaction may re-cache the old graph.
        transaction.on_commit(lambda: cache.delete(key))

    @staticmethod
    def _walk(graph, start: int):
        """Breadth-first walk yielding (uom_pk, factor_from_start, path)."""
        seen = {start}
        queue = deque([(start, ONE, (start,))])
        while queue:
            node, acc, path = queue.popleft()
            for neighbour, weight in graph.get(node, ()):
                if neighbour in seen:
                    continue
                seen.add(neighbour)
                step = (neighbour, acc * weight, path + (neighbour,))
                yield step
                queue.append(step)

    # ══════════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_multiplier(cls, tenant, from_uom, to_uom) -> Decimal | None:
        """
        Factor that turns a quantity in from_uom into to_uom.

        Lookup order: identity, direct row, inverse of the reverse row,
        shortest path in the tenant graph. None when the units are not
        connected.
        """
        a, b = _pk(from_uom), _pk(to_uom)
        if a == b:
            return ONE

        rows = UnitConversion.objects.for_tenant(tenant)
        direct = rows.between(a, b).values_list('factor', flat=True).first()
        if direct is not None:
            return direct

        reverse = rows.between(b, a).values_list('factor', flat=True).first()
        if reverse is not None:
            return ONE / reverse

        for node, weight, _path in cls._walk(cls.graph(tenant), a):
            if node == b:
                return weight
        return None

    @classmethod
    def convert(cls, tenant, from_uom, to_uom, quantity) -> Decimal:
        """
        Convert quantity from one unit to another. Not rounded.

        Raises:
            NotFound('NO_CONVERSION'): units are not connected
        """
        multiplier = cls.get_multiplier(tenant, from_uom, to_uom)
        if multiplier is None:
            raise NotFound(
                'NO_CONVERSION',
                from_uom=str(from_uom),
                to_uom=str(to_uom),
            )
        return to_decimal(quantity) * multiplier

    @classmethod
    def to_base(cls, tenant, item, quantity, uom) -> Decimal:
        """Quantity of `item` in its base unit, rounded to the stored places."""
        return qty(cls.convert(tenant, uom, item.base_uom, quantity))

    @classmethod
    def conversions_for(cls, tenant, uom) -> list[ConversionPath]:
        """
        Every unit reachable from `uom`, with its factor.

        Direct conversions (one hop) come first, then indirect ones by
        distance.
        """
        source = cls._resolve(tenant, [uom])[_pk(uom)]
        reached = list(cls._walk(cls.graph(tenant), source.pk))
        if not reached:
            return []

        units = UnitOfMeasure.objects.in_bulk([node for node, _, _ in reached])
        return [
            ConversionPath(
                from_uom=source,
                to_uom=units[node],
                factor=weight,
                is_direct=len(path) == 2,
                via=path[1:-1],
            )
            for node, weight, path in reached
            if node in units
        ]

    # ══════════════════════════════════════════════════════════════
    # WRITES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _resolve(cls, tenant, uoms) -> dict[int, UnitOfMeasure]:
        pks = {_pk(u) for u in uoms}
        found = UnitOfMeasure.objects.filter(tenant=tenant).in_bulk(pks)
        if len(found) != len(pks):
            raise NotFound('UOM_NOT_FOUND')
        return found

    @classmethod
    def create_conversion(cls, tenant, from_uom, to_uom, factor,
                          effective_from=None, replace=True) -> UnitConversion:
        """
        Record that 1 from_uom = factor to_uom, plus the mirror row.

        An existing pair is updated in place (mirror included) unless
        replace=False, in which case it is a Conflict.

        Raises:
            BadRequest('SAME_UOM'): from_uom == to_uom
            BadRequest('INVALID_FACTOR'): factor is not a positive number, or
                it or its inverse rounds to zero
            NotFound('UOM_NOT_FOUND'): either unit is not the tenant's
            Conflict('DUPLICATE_CONVERSION'): pair exists and replace=False
        """
        a, b = _pk(from_uom), _pk(to_uom)
        if a == b:
            raise BadRequest('SAME_UOM')

        try:
            raw = to_decimal(factor)
        except ValueError as exc:
            raise BadRequest('INVALID_FACTOR', factor=str(factor)) from exc
        if raw <= 0:
            raise BadRequest('INVALID_FACTOR', factor=raw)
        # both directions must survive rounding to the stored places
        inverse = as_factor(ONE / raw)
        if inverse <= 0:
            raise BadRequest('INVALID_FACTOR', factor=raw)
        forward = as_factor(raw)
        if forward <= 0:
            raise BadRequest('INVALID_FACTOR', factor=raw)

        units = cls._resolve(tenant, [a, b])
        effective_from = effective_from or timezone.now()

        with transaction.atomic():
            exists = UnitConversion.objects.for_tenant(tenant).between(a, b).exists()
            if exists and not replace:
                raise Conflict('DUPLICATE_CONVERSION', from_uom=units[a].name, to_uom=units[b].name)

            conversion, created = UnitConversion.objects.update_or_create(
                tenant=tenant, from_uom=units[a], to_uom=units[b],
                defaults={'factor': forward, 'effective_from': effective_from},
            )
            UnitConversion.objects.update_or_create(
                tenant=tenant, from_uom=units[b], to_uom=units[a],
                defaults={'factor': inverse, 'effective_from': effective_from},
            )
            cls.invalidate(tenant)

        logger.info(
            "uom.conversion_saved",
            extra={
                "tenant": tenant.pk,
                "from_uom": units[a].name,
                "to_uom": units[b].name,
                "factor": str(forward),
                "is_new": created,
            },
        )
        return UnitConversion.objects.select_related('from_uom', 'to_uom').get(pk=conversion.pk)

    @classmethod
    def remove_conversion(cls, tenant, conversion) -> None:
        """
        Delete a conversion together with its mirror.

        Raises:
            NotFound('CONVERSION_NOT_FOUND')
        """
        pk = conversion.pk if isinstance(conversion, UnitConversion) else conversion
        with transaction.atomic():
            row = UnitConversion.objects.for_tenant(tenant).select_for_update().filter(pk=pk).first()
            if row is None:
                raise NotFound('CONVERSION_NOT_FOUND')
            UnitConversion.objects.for_tenant(tenant).between(row.to_uom_id, row.from_uom_id).delete()
            row.delete()
            cls.invalidate(tenant)

        logger.info(
            "uom.conversion_removed",
            extra={"tenant": tenant.pk, "from_uom": row.from_uom_id, "to_uom": row.to_uom_id},
        )
