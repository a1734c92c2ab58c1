from .run_manager import RunManager, export_results

__all__ = [
    'RunManager',
    'export_results',
]
