"""Summary report generation for the evacuation CA."""

from typing import List, Optional, TYPE_CHECKING
from pathlib import Path

import numpy as np

from ..model.exit import Status

if TYPE_CHECKING:
    from ..model.runner import SetResult


class Reporter:
    """Generates summary statistics and formatted text report."""

    def __init__(self, config_path: str, seed: Optional[int]):
        self.config_path = config_path
        self.seed = seed
        self.set_results: List["SetResult"] = []

    def update(self, set_result: "SetResult") -> None:
        """Accumulate one simulation set."""
        self.set_results.append(set_result)

    @property
    def inaccessible_sets(self) -> int:
        return sum(1 for r in self.set_results if r.status == Status.INACCESSIBLE_EXIT)

    def _set_lines(self, set_result: "SetResult") -> List[str]:
        exits = ', '.join(f'{len(cells)} cell(s) at {cells[0]}' for cells in set_result.exits)
        lines = [f"Set {set_result.index}: {exits}"]
        if set_result.status == Status.INACCESSIBLE_EXIT:
            lines.append("    At least one exit from the simulation set is inaccessible.")
            return lines

        timesteps = np.array(set_result.timesteps)
        conflicts = sum(r.conflicts for r in set_result.runs)
        panic = sum(r.panic_events for r in set_result.runs)
        lines += [
            f"    Runs:        {len(set_result.runs)}",
            f"    Timesteps:   mean {timesteps.mean():.1f}, min {timesteps.min()}, "
            f"max {timesteps.max()}",
            f"    Conflicts:   {conflicts}",
            f"    Panic:       {panic} pedestrian-steps",
        ]
        return lines

    def generate_summary(self, output_dir: Path,
                         csv_enabled: bool,
                         snapshot_enabled: bool,
                         gif_enabled: bool) -> str:
        """Returns formatted text report."""
        total_runs = sum(len(r.runs) for r in self.set_results)

        lines = [
            "",
            "=" * 80,
            "                    EVACUATION CA SIMULATION REPORT",
            "=" * 80,
            f"Configuration: {self.config_path}",
            f"Initial Seed: {self.seed}",
            "",
            "SIMULATION SETS",
            "-" * 40,
            f"Sets:              {len(self.set_results)}",
            f"Inaccessible:      {self.inaccessible_sets}",
            f"Runs:              {total_runs}",
            "",
        ]
        for set_result in self.set_results:
            lines += self._set_lines(set_result)

        lines += [
            "",
            "OUTPUT FILES",
            "-" * 40,
        ]
        lines.append(f"Timesteps:  {output_dir / 'timesteps.csv'}")

        if csv_enabled:
            lines.append(f"CSV Log:    {output_dir / 'simulation_log.csv'}")
        else:
            lines.append("CSV Log:    (disabled)")

        if snapshot_enabled:
            lines.append(f"Images:     {output_dir}/set_*.png")
        else:
            lines.append("Images:     (disabled)")

        if gif_enabled:
            lines.append(f"Animation:  {output_dir}/set_*_run_0.gif")
        else:
            lines.append("Animation:  (disabled)")

        lines.append("=" * 80)

        return "\n".join(lines)
