import sys
import matplotlib.pyplot as plt
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from config import ControllerConfig, MPCConfig, get_vehicle_config
from controllers import PathTrackingController
from models import KinematicBicycleModel, TrackModel
from simulation import LapSimulator
from utils import RunManager, export_results
from visualization import plot_closed_loop, plot_cycle


def main(args):
    """Closed-loop simulation of the controller on a generated track."""

    print("="*70)
    print("  MPC PATH TRACKING")
    print("="*70)

    run_manager = RunManager(args.track, base_dir="results")

    # =========================================================================
    print("\n" + "="*70)
    print("CONFIGURATION")
    print("="*70)

    vehicle_config = get_vehicle_config(args.vehicle)
    mpc_config = MPCConfig(**args.mpc_kwargs())
    # The simulator reports speed in m/s already
    controller_config = ControllerConfig(**{**args.controller_kwargs(), 'speed_scale': 1.0})

    print(f"\nVehicle: {args.vehicle} (Lf={vehicle_config.lf}m, "
          f"steering ±{vehicle_config.max_steering_deg:.0f}°)")
    print(f"Horizon: {mpc_config.horizon_steps} steps x {mpc_config.dt}s "
          f"({mpc_config.horizon_time:.2f}s), v_ref={mpc_config.ref_v} m/s")
    print(f"Latency: {controller_config.latency*1000:.0f}ms, control period {args.sim_dt*1000:.0f}ms")

    # =========================================================================
    print("\n" + "="*70)
    print("LOAD TRACK")
    print("="*70)

    track = TrackModel.from_name(args.track, seed=args.seed)

    # =========================================================================
    print("\n" + "="*70)
    print("SIMULATE")
    print("="*70)

    controller = PathTrackingController(vehicle_config, mpc_config, controller_config)
    vehicle_model = KinematicBicycleModel(vehicle_config)
    simulator = LapSimulator(vehicle_model, track, controller,
                             dt=args.sim_dt, latency=args.latency)
    result = simulator.simulate_lap(max_time=args.sim_time)

    # =========================================================================
    print("\n" + "="*70)
    print("RESULTS SUMMARY")
    print("="*70)

    stats = controller.get_statistics()
    summary = result.summary()
    print(f"""
        Track:              {track.name} ({track.total_length:.0f} m)
        Duration:           {summary['duration']:.1f} s
        Distance:           {summary['distance']:.0f} m ({'loop completed' if summary['completed'] else 'loop not completed'})
        Mean speed:         {summary['mean_speed']:.2f} m/s
        RMS cte:            {summary['rms_cte']:.3f} m
        Max |cte|:          {summary['max_abs_cte']:.3f} m
        Solver success:     {stats['success_rate']:.1f}% ({stats['fail_count']} failures)
        Avg solve time:     {stats['avg_solve_time']*1000:.1f} ms
        Fallback commands:  {stats['previous_count']} previous, {stats['neutral_count']} neutral
    """)

    run_manager.save_json(export_results(result, stats, args), 'results_summary')
    run_manager.save_dataframe(result.to_dataframe(), 'history')

    if args.plot:
        fig = plot_closed_loop(result, track)
        run_manager.save_plot(fig, '01_closed_loop')
        plt.close(fig)

        # Last cycle as the simulator would draw it
        controller.reset()
        wx, wy = track.waypoints_ahead(result.xs[-1], result.ys[-1])
        command = controller.step({
            'waypoints_x': wx, 'waypoints_y': wy,
            'x': result.xs[-1], 'y': result.ys[-1], 'psi': result.psis[-1],
            'speed': result.velocities[-1],
            'steering_angle': result.steering_history[-1] * vehicle_config.steering_max,
            'throttle': result.throttle_history[-1],
        })
        fig = plot_cycle(command)
        run_manager.save_plot(fig, '02_last_cycle')
        plt.close(fig)

    print(f"\n📁 All results saved to: {run_manager.run_dir}")
    return result, run_manager


if __name__ == "__main__":
    from config.app_config import app
    app()
