"""
===============================================================================
KERBOL TRANSFER PLANNER - Body Catalog
===============================================================================
Resolves flat body records into a tree of Body / Orbit values.

Records carry physical data and orbital elements but not, in general, the
parent relationship: the simulation's data files list every body
independently, so the parent of each body is looked up by name in a fixed
table (PARENT_NAMES). A record may name its primary explicitly with a
``primary`` key, which takes precedence over the table.

Record format (angles in degrees except the mean anomaly at epoch, which is
given in radians as the simulation stores it):

    {
        "id": 1, "name": "Kerbin", "mass": 5.29e22, "radius": 600000.0,
        "rotation_period": 21549.425, "sphere_of_influence": 84159286.0,
        "max_atmosphere": 70000.0, "atmosphere_contains_oxygen": True,
        "orbit": {"semi_major_axis": 13599840256.0, "eccentricity": 0.0,
                  "inclination": 0.0, "argument_of_periapsis": 0.0,
                  "longitude_of_ascending_node": 0.0,
                  "mean_anomaly_at_epoch": 3.14, "epoch": 0.0},
    }

The Catalog is an explicit value handed to whoever needs it; there is no
global registry.
===============================================================================
"""

import logging
import math
from collections import deque
from typing import Dict, Iterable, Iterator, List, Optional

import yaml

from core.constants import DEG2RAD, KERBOL_MU, KERBOL_RADIUS
from dynamics.body import Body
from dynamics.orbit import Orbit

logger = logging.getLogger(__name__)


# =============================================================================
# PARENT LOOKUP TABLE
# =============================================================================

PARENT_NAMES: Dict[str, str] = {
    "Moho": "Kerbol",
    "Eve": "Kerbol",
    "Kerbin": "Kerbol",
    "Duna": "Kerbol",
    "Dres": "Kerbol",
    "Jool": "Kerbol",
    "Eeloo": "Kerbol",
    "Gilly": "Eve",
    "Mun": "Kerbin",
    "Minmus": "Kerbin",
    "Ike": "Duna",
    "Laythe": "Jool",
    "Vall": "Jool",
    "Tylo": "Jool",
    "Bop": "Jool",
    "Pol": "Jool",
}


def _orbit(a, e, i, w, raan, m0):
    return {
        "semi_major_axis": a,
        "eccentricity": e,
        "inclination": i,
        "argument_of_periapsis": w,
        "longitude_of_ascending_node": raan,
        "mean_anomaly_at_epoch": m0,
        "epoch": 0.0,
    }


# =============================================================================
# BUILT-IN KERBOL SYSTEM
# =============================================================================
# Physical data: mass (kg), radius (m), sidereal rotation (s), SOI (m),
# atmosphere top (m). Orbits: a (m), e, i / omega / Omega (deg), M0 (rad).

KERBOL_SYSTEM_RECORDS: List[dict] = [
    {"id": 0, "name": "Kerbol", "mass": 1.7565670e28, "radius": KERBOL_RADIUS,
     "rotation_period": 432000.0, "gravitational_parameter": KERBOL_MU},
    {"id": 4, "name": "Moho", "mass": 2.5263617e21, "radius": 250000.0,
     "rotation_period": 1210000.0, "sphere_of_influence": 9646663.0,
     "orbit": _orbit(5263138304.0, 0.2, 7.0, 15.0, 70.0, 3.14)},
    {"id": 5, "name": "Eve", "mass": 1.2244127e23, "radius": 700000.0,
     "rotation_period": 80500.0, "sphere_of_influence": 85109365.0,
     "max_atmosphere": 90000.0,
     "orbit": _orbit(9832684544.0, 0.01, 2.1, 0.0, 15.0, 3.14)},
    {"id": 13, "name": "Gilly", "mass": 1.2420512e17, "radius": 13000.0,
     "rotation_period": 28255.0, "sphere_of_influence": 126123.0,
     "orbit": _orbit(31500000.0, 0.55, 12.0, 10.0, 80.0, 0.9)},
    {"id": 1, "name": "Kerbin", "mass": 5.2915793e22, "radius": 600000.0,
     "rotation_period": 21549.425, "sphere_of_influence": 84159286.0,
     "max_atmosphere": 70000.0, "atmosphere_contains_oxygen": True,
     "orbit": _orbit(13599840256.0, 0.0, 0.0, 0.0, 0.0, 3.14)},
    {"id": 2, "name": "Mun", "mass": 9.7600236e20, "radius": 200000.0,
     "rotation_period": 138984.38, "sphere_of_influence": 2429559.0,
     "orbit": _orbit(12000000.0, 0.0, 0.0, 0.0, 0.0, 1.7)},
    {"id": 3, "name": "Minmus", "mass": 2.6457897e19, "radius": 60000.0,
     "rotation_period": 40400.0, "sphere_of_influence": 2247428.0,
     "orbit": _orbit(47000000.0, 0.0, 6.0, 38.0, 78.0, 0.9)},
    {"id": 6, "name": "Duna", "mass": 4.5154812e21, "radius": 320000.0,
     "rotation_period": 65517.859, "sphere_of_influence": 47921949.0,
     "max_atmosphere": 50000.0,
     "orbit": _orbit(20726155264.0, 0.051, 0.06, 0.0, 135.5, 3.14)},
    {"id": 7, "name": "Ike", "mass": 2.7821949e20, "radius": 130000.0,
     "rotation_period": 65517.862, "sphere_of_influence": 1049599.0,
     "orbit": _orbit(3200000.0, 0.03, 0.2, 0.0, 0.0, 1.7)},
    {"id": 15, "name": "Dres", "mass": 3.2191322e20, "radius": 138000.0,
     "rotation_period": 34800.0, "sphere_of_influence": 32832840.0,
     "orbit": _orbit(40839348203.0, 0.145, 5.0, 90.0, 280.0, 3.14)},
    {"id": 8, "name": "Jool", "mass": 4.2332635e24, "radius": 6000000.0,
     "rotation_period": 36000.0, "sphere_of_influence": 2455985200.0,
     "max_atmosphere": 200000.0,
     "orbit": _orbit(68773560320.0, 0.05, 1.304, 0.0, 52.0, 0.1)},
    {"id": 9, "name": "Laythe", "mass": 2.9397663e22, "radius": 500000.0,
     "rotation_period": 52980.879, "sphere_of_influence": 3723646.0,
     "max_atmosphere": 50000.0, "atmosphere_contains_oxygen": True,
     "orbit": _orbit(27184000.0, 0.0, 0.0, 0.0, 0.0, 3.14)},
    {"id": 10, "name": "Vall", "mass": 3.1088028e21, "radius": 300000.0,
     "rotation_period": 105962.09, "sphere_of_influence": 2406401.0,
     "orbit": _orbit(43152000.0, 0.0, 0.0, 0.0, 0.0, 0.9)},
    {"id": 12, "name": "Tylo", "mass": 4.2332635e22, "radius": 600000.0,
     "rotation_period": 211926.36, "sphere_of_influence": 10856518.0,
     "orbit": _orbit(68500000.0, 0.0, 0.025, 0.0, 0.0, 3.14)},
    {"id": 11, "name": "Bop", "mass": 3.7261536e19, "radius": 65000.0,
     "rotation_period": 544507.43, "sphere_of_influence": 1221061.0,
     "orbit": _orbit(128500000.0, 0.235, 15.0, 25.0, 10.0, 0.9)},
    {"id": 14, "name": "Pol", "mass": 1.0813636e19, "radius": 44000.0,
     "rotation_period": 901902.62, "sphere_of_influence": 1042139.0,
     "orbit": _orbit(179890000.0, 0.171, 4.25, 15.0, 2.0, 0.9)},
    {"id": 16, "name": "Eeloo", "mass": 1.1149358e21, "radius": 210000.0,
     "rotation_period": 19460.0, "sphere_of_influence": 119082940.0,
     "orbit": _orbit(90118820000.0, 0.26, 6.15, 260.0, 50.0, 3.14)},
]


# =============================================================================
# CATALOG
# =============================================================================

class Catalog:
    """
    Immutable tree of bodies, indexed by id and by name.

    Typical usage:
        catalog = build_catalog(KERBOL_SYSTEM_RECORDS)
        kerbin = catalog["Kerbin"]
        sun = catalog.primary_of(kerbin)
    """

    def __init__(self, bodies: Iterable[Body]):
        self._by_id: Dict[int, Body] = {}
        self._by_name: Dict[str, Body] = {}
        for body in bodies:
            if body.body_id in self._by_id:
                raise ValueError(f"Duplicate body id {body.body_id}")
            if body.name in self._by_name:
                raise ValueError(f"Duplicate body name {body.name!r}")
            self._by_id[body.body_id] = body
            self._by_name[body.name] = body

        roots = [b for b in self._by_id.values() if b.is_root]
        if len(roots) != 1:
            raise ValueError(f"Catalog must have exactly one root body, found {len(roots)}")
        self.root = roots[0]

    def __getitem__(self, name: str) -> Body:
        return self._by_name[name]

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Body]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def by_id(self, body_id: int) -> Body:
        return self._by_id[body_id]

    def primary_of(self, body: Body) -> Optional[Body]:
        if body.primary_id is None:
            return None
        return self._by_id[body.primary_id]

    def secondaries_of(self, body: Body) -> List[Body]:
        return sorted((self._by_id[i] for i in body.secondaries), key=lambda b: b.body_id)

    def ancestors(self, body: Body) -> List[Body]:
        """Chain of primaries from the body's parent up to the root."""
        chain = []
        current = self.primary_of(body)
        while current is not None:
            chain.append(current)
            current = self.primary_of(current)
        return chain

    def common_ancestor(self, a: Body, b: Body) -> Body:
        """Closest body that has both a and b in its subtree (or is one of them)."""
        lineage = [a] + self.ancestors(a)
        ids = {body.body_id for body in lineage}
        for candidate in [b] + self.ancestors(b):
            if candidate.body_id in ids:
                return candidate
        return self.root


def build_catalog(records: Iterable[dict], parents: Optional[Dict[str, str]] = None) -> Catalog:
    """
    Resolve flat records into a Catalog.

    Args:
        records: Body records (see module docstring).
        parents: Name -> parent-name table; defaults to PARENT_NAMES.

    Returns:
        Catalog whose non-root bodies each carry an Orbit around their parent.

    Raises:
        ValueError: Unknown parent, a non-root body without orbital
                    elements, or a cycle in the parent relation.
    """
    parents = PARENT_NAMES if parents is None else parents
    records = list(records)
    by_name = {r["name"]: r for r in records}

    parent_of: Dict[str, Optional[str]] = {}
    for r in records:
        parent = r.get("primary", parents.get(r["name"]))
        if parent is not None and parent not in by_name:
            raise ValueError(f"Body {r['name']!r} orbits unknown body {parent!r}")
        if parent is not None and "orbit" not in r:
            raise ValueError(f"Body {r['name']!r} has a primary but no orbit")
        parent_of[r["name"]] = parent

    children: Dict[str, List[str]] = {name: [] for name in by_name}
    for name, parent in parent_of.items():
        if parent is not None:
            children[parent].append(name)

    built: Dict[str, Body] = {}
    queue = deque(name for name, parent in parent_of.items() if parent is None)
    while queue:
        name = queue.popleft()
        record = by_name[name]
        parent = parent_of[name]
        primary = built[parent] if parent is not None else None
        built[name] = _make_body(
            record,
            primary=primary,
            secondaries=frozenset(by_name[c]["id"] for c in children[name]),
        )
        queue.extend(children[name])

    if len(built) != len(records):
        missing = sorted(set(by_name) - set(built))
        raise ValueError(f"Bodies not reachable from a root: {missing}")

    logger.debug("Built catalog with %d bodies", len(built))
    return Catalog(built.values())


def _make_body(record: dict, primary: Optional[Body], secondaries) -> Body:
    orbit = None
    if primary is not None:
        elements = record["orbit"]
        orbit = Orbit(
            semi_major_axis=float(elements["semi_major_axis"]),
            eccentricity=float(elements.get("eccentricity", 0.0)),
            inclination=float(elements.get("inclination", 0.0)) * DEG2RAD,
            argument_of_periapsis=float(elements.get("argument_of_periapsis", 0.0)) * DEG2RAD,
            longitude_of_ascending_node=float(elements.get("longitude_of_ascending_node", 0.0)) * DEG2RAD,
            mean_anomaly_at_epoch=float(elements.get("mean_anomaly_at_epoch", 0.0)),
            epoch=float(elements.get("epoch", 0.0)),
            primary_body=primary,
        )
    mu = record.get("gravitational_parameter")
    return Body(
        body_id=int(record["id"]),
        name=record["name"],
        mass=float(record.get("mass", 0.0)),
        radius=float(record["radius"]),
        rotation_period=float(record.get("rotation_period", 0.0)),
        sphere_of_influence=float(record.get("sphere_of_influence", math.inf)),
        max_atmosphere=float(record.get("max_atmosphere", 0.0)),
        atmosphere_contains_oxygen=bool(record.get("atmosphere_contains_oxygen", False)),
        gravitational_parameter=float(mu) if mu is not None else None,
        primary_id=primary.body_id if primary is not None else None,
        secondaries=secondaries,
        orbit=orbit,
    )


def load_catalog(path: Optional[str] = None) -> Catalog:
    """
    Load a catalog from a YAML file with a top-level ``bodies:`` list, or
    build the built-in Kerbol system when no path is given.
    """
    if path is None:
        return build_catalog(KERBOL_SYSTEM_RECORDS)

    logger.info("Loading body catalog from: %s", path)
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    return build_catalog(data["bodies"], parents=data.get("parents"))
