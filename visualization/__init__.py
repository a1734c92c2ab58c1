from .trajectory_viz import plot_closed_loop, plot_cycle

__all__ = [
    'plot_closed_loop',
    'plot_cycle',
]
