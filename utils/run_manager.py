from pathlib import Path
from datetime import datetime
import json
from typing import Dict
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from simulation import LapResult


class RunManager:
    """Manages results directory structure and file saving"""

    def __init__(self, scenario_name: str, base_dir: str = "results"):
        self.scenario_name = scenario_name
        self.base_dir = Path(base_dir)
        self.timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        # Create directory structure: results/scenario/YYYYMMDD_HHMMSS/
        self.run_dir = self.base_dir / scenario_name.lower() / self.timestamp
        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.plots_dir = self.run_dir / "plots"
        self.plots_dir.mkdir(exist_ok=True)

        self.data_dir = self.run_dir / "data"
        self.data_dir.mkdir(exist_ok=True)

        print(f"\n📁 Results directory: {self.run_dir}")

    def save_plot(self, fig: plt.Figure, name: str):
        """Save a matplotlib figure"""
        path = self.plots_dir / f"{name}.png"
        fig.savefig(path, dpi=150, bbox_inches='tight')
        print(f"   ✓ Saved {path.name}")
        return path

    def save_json(self, data: Dict, name: str):
        """Save data as JSON"""
        path = self.data_dir / f"{name}.json"

        # Convert numpy arrays to lists for JSON serialization
        def convert_numpy(obj):
            if isinstance(obj, np.ndarray):
                return obj.tolist()
            elif isinstance(obj, np.integer):
                return int(obj)
            elif isinstance(obj, (np.floating, np.bool_)):
                return obj.item()
            elif isinstance(obj, dict):
                return {k: convert_numpy(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_numpy(item) for item in obj]
            return obj

        with open(path, 'w') as f:
            json.dump(convert_numpy(data), f, indent=2)
        print(f"   ✓ Saved {path.name}")
        return path

    def save_dataframe(self, df: pd.DataFrame, name: str):
        """Save a table as CSV"""
        path = self.data_dir / f"{name}.csv"
        df.to_csv(path, index=False)
        print(f"   ✓ Saved {path.name}")
        return path


def export_results(result: LapResult, controller_stats: Dict, args) -> Dict:

    return {
        'metadata': {
            'track': args.track,
            'vehicle': args.vehicle,
            'timestamp': datetime.now().isoformat(),
            'latency': args.latency,
            'ref_v': args.ref_v,
            'horizon_steps': args.horizon_steps,
            'dt': args.dt,
        },
        'performance': result.summary(),
        'solver': controller_stats,
    }
