"""Configuration dataclasses and YAML loader for the evacuation CA."""

import math
from dataclasses import dataclass, field
from typing import List, Tuple, Dict, Any, Optional
from pathlib import Path
import yaml

Location = Tuple[int, int]

OUTPUT_TIMESTEPS = "timesteps"
OUTPUT_HEATMAP = "heatmap"
OUTPUT_VISUALIZATION = "visualization"
OUTPUT_FORMATS = (OUTPUT_TIMESTEPS, OUTPUT_HEATMAP, OUTPUT_VISUALIZATION)


@dataclass
class GridConfig:
    width: int
    height: int


@dataclass
class MovementConfig:
    allow_diagonal: bool = True
    allow_x_movement: bool = False
    static_strength: float = 10.0   # kS parameter
    panic_threshold: float = 0.75   # occupied fraction of neighbours
    panic_flattening: float = 0.8   # 0 = no effect, 1 = uniform choice
    friction: float = 0.0           # chance nobody wins a contested cell

    def __post_init__(self):
        if not math.isfinite(self.static_strength) or self.static_strength < 0:
            raise ValueError(f"static_strength must be a finite non-negative number, "
                             f"got {self.static_strength}")
        if not 0.0 <= self.panic_threshold <= 1.0:
            raise ValueError(f"panic_threshold must be in [0, 1], got {self.panic_threshold}")
        if not 0.0 <= self.panic_flattening <= 1.0:
            raise ValueError(f"panic_flattening must be in [0, 1], got {self.panic_flattening}")
        if not 0.0 <= self.friction < 1.0:
            raise ValueError(f"friction must be in [0, 1), got {self.friction}")


@dataclass
class WallSpec:
    wall_type: str  # "rectangle" or "points"
    data: Dict[str, Any]


@dataclass
class LayoutConfig:
    map_rows: List[str] = field(default_factory=list)
    walls: List[WallSpec] = field(default_factory=list)
    exits: List[List[Location]] = field(default_factory=list)
    pedestrians: List[Location] = field(default_factory=list)


@dataclass
class SimulationSetSpec:
    exits: List[List[Location]]


@dataclass
class SimulationConfig:
    grid: Optional[GridConfig]
    layout: LayoutConfig
    movement: MovementConfig = field(default_factory=MovementConfig)
    simulation_sets: List[SimulationSetSpec] = field(default_factory=list)
    seed: int = 0
    num_simulations: int = 1
    pedestrian_count: Optional[int] = None
    output_format: str = OUTPUT_TIMESTEPS

    # Export flags (can be overridden by CLI)
    csv_enabled: bool = True
    snapshot_enabled: bool = True
    gif_enabled: bool = False
    quiet: bool = False
    debug: bool = False
    out_dir: Path = field(default_factory=lambda: Path("./output"))

    @property
    def uses_static_exits(self) -> bool:
        """Exits come from the layout and are shared by a single set."""
        return not self.simulation_sets

    @property
    def uses_static_pedestrians(self) -> bool:
        return self.pedestrian_count is None

    def validate(self) -> None:
        """Raise ValueError on inconsistent settings."""
        if self.grid is None and not self.layout.map_rows:
            raise ValueError("Either 'grid' dimensions or 'layout.map' must be given")
        if self.num_simulations < 1:
            raise ValueError(f"num_simulations must be at least 1, got {self.num_simulations}")
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown output format: {self.output_format}")
        if self.pedestrian_count is not None:
            if self.pedestrian_count < 0:
                raise ValueError("pedestrian_count must not be negative")
            if self.layout.pedestrians:
                raise ValueError("Give either 'pedestrian_count' or static pedestrians, not both")
        if self.simulation_sets and self.layout.exits:
            raise ValueError("Layout exits cannot be combined with 'simulation_sets'")
        for index, sim_set in enumerate(self.simulation_sets):
            if not sim_set.exits or any(not cells for cells in sim_set.exits):
                raise ValueError(f"Simulation set {index} has an empty exit")


def _location(raw) -> Location:
    x, y = raw
    return (int(x), int(y))


def _parse_walls(walls_raw: List[Dict]) -> List[WallSpec]:
    """Parse wall specifications from raw YAML data."""
    walls = []
    for w in walls_raw:
        wall_type = w.get('type', 'rectangle')
        if wall_type == 'rectangle':
            data = {
                'x': w['x'],
                'y': w['y'],
                'width': w['width'],
                'height': w['height']
            }
        elif wall_type == 'points':
            data = {'coords': [_location(c) for c in w['coords']]}
        else:
            raise ValueError(f"Unknown wall type: {wall_type}")
        walls.append(WallSpec(wall_type=wall_type, data=data))
    return walls


def _parse_exits(exits_raw: List) -> List[List[Location]]:
    """Each exit is a list of cells; a bare [x, y] pair is a one-cell exit."""
    exits = []
    for e in exits_raw:
        if len(e) == 2 and all(isinstance(v, int) for v in e):
            exits.append([_location(e)])
        else:
            exits.append([_location(c) for c in e])
    return exits


def _parse_map(map_raw) -> List[str]:
    if map_raw is None:
        return []
    if isinstance(map_raw, str):
        return [row.strip() for row in map_raw.splitlines() if row.strip()]
    return [str(row).strip() for row in map_raw]


def parse_config(raw: Dict[str, Any]) -> SimulationConfig:
    """Build a validated SimulationConfig from already-loaded YAML data."""
    if not isinstance(raw, dict):
        raise ValueError("Configuration must be a mapping")

    grid = None
    if 'grid' in raw:
        grid = GridConfig(
            width=raw['grid']['width'],
            height=raw['grid']['height']
        )

    # Parse layout
    layout_raw = raw.get('layout', {})
    layout = LayoutConfig(
        map_rows=_parse_map(layout_raw.get('map')),
        walls=_parse_walls(layout_raw.get('walls', [])),
        exits=_parse_exits(layout_raw.get('exits', [])),
        pedestrians=[_location(p) for p in layout_raw.get('pedestrians', [])]
    )

    try:
        movement = MovementConfig(**raw.get('movement', {}))
    except TypeError as e:
        raise ValueError(f"Invalid movement settings: {e}") from e

    simulation_sets = [
        SimulationSetSpec(exits=_parse_exits(s['exits']))
        for s in raw.get('simulation_sets', [])
    ]

    sim_raw = raw.get('simulation', {})
    export_raw = raw.get('export', {})

    config = SimulationConfig(
        grid=grid,
        layout=layout,
        movement=movement,
        simulation_sets=simulation_sets,
        seed=sim_raw.get('seed', 0),
        num_simulations=sim_raw.get('num_simulations', 1),
        pedestrian_count=sim_raw.get('pedestrian_count'),
        output_format=sim_raw.get('output_format', OUTPUT_TIMESTEPS),
        csv_enabled=export_raw.get('csv', True),
        snapshot_enabled=export_raw.get('snapshot', True),
        gif_enabled=export_raw.get('gif', False)
    )
    config.validate()
    return config


def load_config(config_path: Path) -> SimulationConfig:
    """Load and validate YAML configuration file."""
    with open(config_path) as f:
        raw = yaml.safe_load(f)
    return parse_config(raw)
