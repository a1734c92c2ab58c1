from .lap import (
    LapSimulator,
    LapResult,
    compare_latencies,
)

__all__ = [
    'LapSimulator',
    'LapResult',
    'compare_latencies',
]
