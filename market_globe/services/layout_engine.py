from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from market_globe.schemas.board import MarkerSize
from market_globe.schemas.quote import Quote

RELAX_MIN_MARKERS = 5
MAX_ITERATIONS = 50
SEPARATION_FACTOR = 2.2
MAX_FORCE_FACTOR = 0.15
HOMING_STRENGTH = 0.01
DAMPING = 0.6
EDGE_MARGIN_FACTOR = 1.2

PositionMap = dict[str, tuple[float, float]]


@dataclass
class LayoutNode:
    symbol: str
    x: float
    y: float
    home_x: float
    home_y: float
    radius: float
    vx: float = 0.0
    vy: float = 0.0


def project(location: tuple[float, float], width: float, height: float) -> tuple[float, float]:
    """Equirectangular projection of (lat, lon) onto a width x height plane."""
    lat, lon = location
    x = (lon + 180.0) / 360.0 * width
    y = (90.0 - lat) / 180.0 * height
    return x, y


def marker_size_for_width(width: float) -> MarkerSize:
    if width < 768:
        size, font_size = 60, 10
    elif width < 1200:
        size, font_size = 80, 12
    else:
        size, font_size = 100, 14
    return MarkerSize(size=size, radius=size / 2, font_size=font_size)


def _clamp(value: float, low: float, high: float) -> float:
    # viewport narrower than two margins pins the marker to the centre line
    if low > high:
        return (low + high) / 2
    return min(max(value, low), high)


def _repel(nodes: list[LayoutNode], min_distance: float, force_factor: float) -> None:
    count = len(nodes)
    for i in range(count):
        a = nodes[i]
        for j in range(i + 1, count):
            b = nodes[j]
            dx = b.x - a.x
            dy = b.y - a.y
            distance = math.hypot(dx, dy)
            if distance >= min_distance:
                continue

            if distance > 0:
                ux, uy = dx / distance, dy / distance
            else:
                # coincident centres have no direction to push along
                ux, uy = 0.0, 0.0

            push = (min_distance - distance) / 2 * force_factor
            a.vx -= ux * push
            a.vy -= uy * push
            b.vx += ux * push
            b.vy += uy * push


def relax(nodes: list[LayoutNode], width: float, height: float, marker_radius: float) -> int:
    """Run damped spring relaxation in place; returns the iteration count."""
    count = len(nodes)
    iterations = min(MAX_ITERATIONS, 2 * count)
    min_distance = marker_radius * SEPARATION_FACTOR
    force_factor = min(MAX_FORCE_FACTOR, 10 / count)

    for _ in range(iterations):
        _repel(nodes, min_distance, force_factor)
        for node in nodes:
            node.vx += (node.home_x - node.x) * HOMING_STRENGTH
            node.vy += (node.home_y - node.y) * HOMING_STRENGTH
            node.vx *= DAMPING
            node.vy *= DAMPING
            margin = node.radius * EDGE_MARGIN_FACTOR
            node.x = _clamp(node.x + node.vx, margin, width - margin)
            node.y = _clamp(node.y + node.vy, margin, height - margin)
    return iterations


def layout_markers(
    quotes: Sequence[Quote],
    width: float,
    height: float,
    marker_radius: float,
) -> PositionMap:
    nodes: list[LayoutNode] = []
    for quote in quotes:
        x, y = project(quote.location, width, height)
        nodes.append(LayoutNode(symbol=quote.symbol, x=x, y=y, home_x=x, home_y=y, radius=marker_radius))

    if len(nodes) < RELAX_MIN_MARKERS:
        return {node.symbol: (node.x, node.y) for node in nodes}

    iterations = relax(nodes, width, height, marker_radius)
    print(
        f"[LAYOUT][relax] nodes={len(nodes)} iterations={iterations} "
        f"width={width} height={height} radius={marker_radius}",
        flush=True,
    )
    return {node.symbol: (node.x, node.y) for node in nodes}
