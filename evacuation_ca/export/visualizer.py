"""Visualization and export for the evacuation CA."""

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt
from matplotlib.colors import to_rgb
from pathlib import Path
from typing import List, TYPE_CHECKING
from PIL import Image
import io

from ..model.grid import WALL_CHAR, EMPTY_CHAR, EXIT_CHAR, PEDESTRIAN_CHAR

if TYPE_CHECKING:
    from ..model.state import SimulationState


def render_ascii(occupancy: np.ndarray, walls: np.ndarray, exits: np.ndarray) -> str:
    """Render the occupancy grid with the environment map symbols."""
    lines = []
    for y in range(occupancy.shape[0]):
        row = []
        for x in range(occupancy.shape[1]):
            if walls[y, x]:
                row.append(WALL_CHAR)
            elif occupancy[y, x]:
                row.append(PEDESTRIAN_CHAR)
            elif exits[y, x]:
                row.append(EXIT_CHAR)
            else:
                row.append(EMPTY_CHAR)
        lines.append(''.join(row))
    return '\n'.join(lines)


def render_heatmap(heatmap: np.ndarray, walls: np.ndarray) -> str:
    """Heatmap counts as text, walls shown as '#'."""
    lines = []
    for y in range(heatmap.shape[0]):
        cells = ['    #' if walls[y, x] else f'{int(heatmap[y, x]):5d}'
                 for x in range(heatmap.shape[1])]
        lines.append(''.join(cells))
    return '\n'.join(lines)


class Visualizer:
    """
    Generates visual outputs using matplotlib.

    Supports:
    - Single PNG snapshots of the occupancy
    - Animated GIF compilation
    - Heatmap and floor field images
    """

    # Color scheme
    COLORS = {
        'wall': '#2C3E50',      # Dark blue-gray
        'floor': '#ECF0F1',     # Light gray
        'exit': '#F39C12',      # Orange
        'moving': '#3498DB',    # Blue
        'stopped': '#E74C3C',   # Red
        'panic': '#8E44AD',     # Purple
    }

    def __init__(self, grid_width: int, grid_height: int,
                 walls: np.ndarray, exits: np.ndarray):
        self.width = grid_width
        self.height = grid_height
        self.walls = walls.copy()
        self.exits = exits.copy()
        self.frames: List[Image.Image] = []

    def _base_image(self) -> np.ndarray:
        base = np.ones((self.height, self.width, 3))
        base[:, :] = to_rgb(self.COLORS['floor'])
        base[self.walls] = to_rgb(self.COLORS['wall'])
        base[self.exits] = to_rgb(self.COLORS['exit'])
        return base

    def _figsize(self):
        aspect = self.width / self.height
        fig_height = 6
        return max(8, fig_height * aspect), fig_height

    def _create_figure(self, state: "SimulationState") -> plt.Figure:
        """Create matplotlib figure for state visualization."""
        fig, ax = plt.subplots(figsize=self._figsize())

        # y grows downwards, as in the environment map
        ax.imshow(self._base_image(), origin='upper', aspect='equal',
                  extent=[-0.5, self.width - 0.5, self.height - 0.5, -0.5])

        remaining = 0
        for pedestrian in state.pedestrians:
            if pedestrian.state == 'exited':
                continue
            remaining += 1
            color = self.COLORS['panic'] if pedestrian.panic else \
                self.COLORS.get(pedestrian.state, self.COLORS['moving'])
            ax.plot(pedestrian.x, pedestrian.y, 'o', color=color,
                    markersize=5, markeredgecolor='white', markeredgewidth=0.3)

        ax.set_title(f'Step {state.step} | Remaining: {remaining} | '
                     f'Exited: {int(state.metrics.get("exited", 0))}')
        ax.set_xlabel('X')
        ax.set_ylabel('Y')
        ax.set_xlim(-0.5, self.width - 0.5)
        ax.set_ylim(self.height - 0.5, -0.5)

        legend_elements = [
            plt.Line2D([0], [0], marker='o', color='w', label='Moving',
                       markerfacecolor=self.COLORS['moving'], markersize=8),
            plt.Line2D([0], [0], marker='o', color='w', label='Stopped',
                       markerfacecolor=self.COLORS['stopped'], markersize=8),
            plt.Line2D([0], [0], marker='o', color='w', label='Panic',
                       markerfacecolor=self.COLORS['panic'], markersize=8),
            plt.Line2D([0], [0], marker='s', color='w', label='Exit',
                       markerfacecolor=self.COLORS['exit'], markersize=8),
        ]
        ax.legend(handles=legend_elements, loc='upper right', fontsize=8)

        plt.tight_layout()
        return fig

    def _save_scalar_map(self, values: np.ndarray, title: str, label: str,
                         output_path: Path, cmap: str) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        masked = np.ma.masked_where(self.walls | ~np.isfinite(values), values)

        fig, ax = plt.subplots(figsize=self._figsize())
        ax.imshow(self._base_image(), origin='upper', aspect='equal')
        image = ax.imshow(masked, origin='upper', aspect='equal', cmap=cmap)
        fig.colorbar(image, ax=ax, label=label)
        ax.set_title(title)
        ax.set_xlabel('X')
        ax.set_ylabel('Y')
        plt.tight_layout()
        fig.savefig(output_path, dpi=150, bbox_inches='tight')
        plt.close(fig)

    def save_heatmap(self, heatmap: np.ndarray, output_path: Path,
                     title: str = 'Occupancy heatmap') -> None:
        """Save accumulated cell occupancy as a PNG heatmap."""
        self._save_scalar_map(heatmap.astype(np.float64), title,
                              'timesteps occupied', output_path, 'hot_r')

    def save_floor_field(self, field: np.ndarray, output_path: Path,
                         title: str = 'Final floor field') -> None:
        """Save a floor field as a PNG, unreachable cells left blank."""
        self._save_scalar_map(field, title, 'distance to exit', output_path, 'viridis')

    def buffer_frame(self, state: "SimulationState") -> None:
        """Store frame for GIF generation."""
        fig = self._create_figure(state)

        # Convert to PIL Image
        buf = io.BytesIO()
        fig.savefig(buf, format='png', dpi=80)
        buf.seek(0)
        img = Image.open(buf).copy()
        self.frames.append(img)
        buf.close()
        plt.close(fig)

    def save_snapshot(self, state: "SimulationState", output_path: Path) -> None:
        """Save single PNG image of current state."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig = self._create_figure(state)
        fig.savefig(output_path, dpi=150, bbox_inches='tight')
        plt.close(fig)

    def generate_gif(self, output_path: Path, fps: int = 10) -> None:
        """Compile buffered frames into animated GIF."""
        if not self.frames:
            return

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        duration = int(1000 / fps)  # milliseconds per frame

        self.frames[0].save(
            output_path,
            save_all=True,
            append_images=self.frames[1:],
            duration=duration,
            loop=0
        )

    def clear_frames(self) -> None:
        """Clear buffered frames."""
        self.frames.clear()
