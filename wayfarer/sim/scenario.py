"""
YAML scenarios for the simulated world.

A scenario describes the areas (as ASCII maps), what sits in them and where
the actor starts:

    actor:
      area: cold_plains
      position: [2, 2]
      hp: 100
    areas:
      - id: cold_plains
        map: |
          ..........
          ...####...
          ..........
        objects:
          - {id: 1, name: shrine, kind: shrine, shrine_type: health, position: [5, 2]}
        adjacent:
          - {area: stony_field, position: [9, 1], arrival: [1, 1]}
        monsters:
          - {id: 7, name: fallen, position: [6, 0]}
    pads:
      - {from: [1, 1], to: [30, 30]}
    portals:
      - {object: arcane_sanctuary_portal, area: arcane_sanctuary, position: [4, 4]}
    town_portal: {area: cold_plains, position: [2, 2]}
    grid_lag: 1

In maps, '#' is a wall and anything else is walkable. An area may use
``size: [width, height]`` instead of a map for an open field.
"""

import logging
from pathlib import Path
from typing import Any, Union

import numpy as np
import yaml

from wayfarer.api.models import (
    ActorState,
    AdjacentLevel,
    AreaData,
    InteractableObject,
    Monster,
    ObjectKind,
    Position,
    ShrineType,
)

from .world import SimulatedWorld

logger = logging.getLogger(__name__)

WALL = "#"


def _position(value: Any, where: str) -> Position:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"{where}: expected an [x, y] pair, got {value!r}")
    return Position(int(value[0]), int(value[1]))


def _grid(data: dict[str, Any], where: str) -> np.ndarray:
    if "map" in data:
        rows = [row for row in str(data["map"]).splitlines() if row.strip()]
        if not rows:
            raise ValueError(f"{where}: empty map")
        width = max(len(row) for row in rows)
        grid = np.zeros((len(rows), width), dtype=bool)
        for y, row in enumerate(rows):
            for x, char in enumerate(row):
                grid[y, x] = char != WALL
        return grid
    if "size" in data:
        width, height = data["size"]
        return np.ones((int(height), int(width)), dtype=bool)
    raise ValueError(f"{where}: needs either 'map' or 'size'")


def _object(data: dict[str, Any], where: str) -> InteractableObject:
    try:
        kind = ObjectKind(data.get("kind", "other"))
        shrine_type = ShrineType(data["shrine_type"]) if "shrine_type" in data else None
    except ValueError as e:
        raise ValueError(f"{where}: {e}") from e
    return InteractableObject(
        id=int(data["id"]),
        name=str(data.get("name", kind.value)),
        position=_position(data.get("position"), where),
        kind=kind,
        selectable=bool(data.get("selectable", True)),
        shrine_type=shrine_type,
        is_super_chest=bool(data.get("super", False)),
    )


def _monster(data: dict[str, Any], where: str) -> Monster:
    return Monster(
        id=int(data["id"]),
        name=str(data.get("name", "monster")),
        position=_position(data.get("position"), where),
        hostile=bool(data.get("hostile", True)),
    )


def build_world(data: dict[str, Any]) -> SimulatedWorld:
    """Build a SimulatedWorld from an already-parsed scenario mapping."""
    if "actor" not in data or "areas" not in data:
        raise ValueError("Scenario needs 'actor' and 'areas' sections")

    areas: dict[str, AreaData] = {}
    monsters: dict[str, list[Monster]] = {}
    arrivals: dict[tuple[str, str], Position] = {}

    for area_data in data["areas"]:
        area_id = str(area_data["id"])
        where = f"area {area_id}"
        offset = _position(area_data.get("offset", [0, 0]), f"{where} offset")
        objects = [_object(o, f"{where} object") for o in area_data.get("objects", [])]

        adjacent = []
        for level in area_data.get("adjacent", []):
            target = str(level["area"])
            adjacent.append(
                AdjacentLevel(
                    area_id=target,
                    position=_position(level.get("position"), f"{where} -> {target}"),
                    is_entrance=bool(level.get("entrance", False)),
                )
            )
            if "arrival" in level:
                arrivals[(area_id, target)] = _position(level["arrival"], f"{where} -> {target} arrival")

        areas[area_id] = AreaData(
            id=area_id,
            is_town=bool(area_data.get("town", False)),
            grid=_grid(area_data, where),
            offset_x=offset.x,
            offset_y=offset.y,
            objects=objects,
            adjacent=adjacent,
        )
        monsters[area_id] = [_monster(m, f"{where} monster") for m in area_data.get("monsters", [])]

    actor_data = data["actor"]
    actor = ActorState(
        position=_position(actor_data.get("position"), "actor"),
        area_id=str(actor_data.get("area")),
        hp=int(actor_data.get("hp", 100)),
        max_hp=int(actor_data.get("max_hp", 100)),
        mana=int(actor_data.get("mana", 100)),
        max_mana=int(actor_data.get("max_mana", 100)),
        states=frozenset(actor_data.get("states", [])),
    )

    pad_links = {
        _position(pad["from"], "pad"): _position(pad["to"], "pad")
        for pad in data.get("pads", [])
    }
    portal_links = {
        str(portal["object"]): (str(portal["area"]), _position(portal["position"], "portal"))
        for portal in data.get("portals", [])
    }
    activators = {
        str(activator["name"]): _object(activator["spawns"], "activator")
        for activator in data.get("activators", [])
    }

    town_portal = None
    if "town_portal" in data:
        town_portal = (
            str(data["town_portal"]["area"]),
            _position(data["town_portal"]["position"], "town_portal"),
        )

    world = SimulatedWorld(
        areas,
        actor,
        monsters=monsters,
        arrivals=arrivals,
        pad_links=pad_links,
        portal_links=portal_links,
        activators=activators,
        town_portal=town_portal,
        grid_lag=int(data.get("grid_lag", 0)),
        seed=int(data.get("seed", 0)),
    )
    logger.debug(f"Built scenario with {len(areas)} areas, actor in {actor.area_id}")
    return world


def load_scenario(path: Union[str, Path]) -> SimulatedWorld:
    """Load a scenario YAML file into a SimulatedWorld."""
    with open(path) as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Scenario {path} is not a mapping")
    return build_world(data)
