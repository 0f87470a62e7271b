"""CSV export functionality for the evacuation CA."""

import csv
from pathlib import Path
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..model.state import SimulationState
    from ..model.runner import SetResult


class CSVWriter:
    """
    Exports pedestrian positions to CSV format incrementally.

    Output format:
        set,run,step,pedestrian_id,x,y,state,panic
        0,0,1,1,5,10,moving,0
        ...
    """

    FIELDNAMES = ['set', 'run', 'step', 'pedestrian_id', 'x', 'y', 'state', 'panic']

    def __init__(self, output_path: Path):
        self.output_path = Path(output_path)
        self.file: Optional[object] = None
        self.writer: Optional[csv.DictWriter] = None
        self._is_open = False

    def open(self) -> None:
        """Initialize file and write header."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.file = open(self.output_path, 'w', newline='')
        self.writer = csv.DictWriter(self.file, fieldnames=self.FIELDNAMES)
        self.writer.writeheader()
        self._is_open = True

    def append(self, state: "SimulationState", set_index: int = 0, run_index: int = 0) -> None:
        """Write state data for current step."""
        if not self._is_open:
            self.open()
        for row in state.to_csv_rows():
            self.writer.writerow({'set': set_index, 'run': run_index, **row})
        self.file.flush()

    def close(self) -> None:
        """Close file handle."""
        if self.file:
            self.file.close()
            self.file = None
            self.writer = None
            self._is_open = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class TimestepsWriter:
    """
    One row per simulation set with the timestep count of every run.

    Inaccessible sets get a single -1 placeholder.
    """

    def __init__(self, output_path: Path):
        self.output_path = Path(output_path)
        self.file = None
        self.writer = None

    def open(self) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.file = open(self.output_path, 'w', newline='')
        self.writer = csv.writer(self.file)
        self.writer.writerow(['set', 'exits', 'timesteps'])

    def append(self, set_result: "SetResult") -> None:
        if self.writer is None:
            self.open()
        exits = ' '.join(
            '|'.join(f'{x}:{y}' for x, y in cells) for cells in set_result.exits
        )
        counts = set_result.timesteps if set_result.runs else [-1]
        self.writer.writerow([set_result.index, exits, ' '.join(str(c) for c in counts)])
        self.file.flush()

    def close(self) -> None:
        if self.file:
            self.file.close()
            self.file = None
            self.writer = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
