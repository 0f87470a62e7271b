"""I/O package for the evacuation CA."""

from .csv_writer import CSVWriter, TimestepsWriter
from .visualizer import Visualizer, render_ascii, render_heatmap
from .reporter import Reporter

__all__ = ['CSVWriter', 'TimestepsWriter', 'Visualizer', 'render_ascii', 'render_heatmap', 'Reporter']
