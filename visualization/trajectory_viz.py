import numpy as np
import matplotlib.pyplot as plt

from .plot_config import DEFAULT_COLORS, apply_plot_style, get_command_bounds


def plot_closed_loop(result, track_model, title=None, save_path=None):
    """Driven path over the track plus cte, speed and command histories."""
    apply_plot_style()
    td = track_model.track_data

    fig, axes = plt.subplots(2, 2, figsize=(14, 10))

    # --- Plot 1: Path ---
    ax = axes[0, 0]
    ax.plot(np.append(td.x, td.x[0]), np.append(td.y, td.y[0]), '--',
            color=DEFAULT_COLORS['track'], linewidth=1, label='Centerline')
    scatter = ax.scatter(result.xs, result.ys, c=result.velocities, cmap='viridis', s=6)
    ax.plot(result.xs[0], result.ys[0], 'o', color=DEFAULT_COLORS['car'], label='Start')
    plt.colorbar(scatter, ax=ax, label='Speed (m/s)')
    ax.set_xlabel('X (m)')
    ax.set_ylabel('Y (m)')
    ax.set_title('Driven path (colored by speed)')
    ax.set_aspect('equal')
    ax.legend()

    # --- Plot 2: Cross-track error ---
    ax = axes[0, 1]
    ax.plot(result.times, result.cte, color=DEFAULT_COLORS['driven'])
    ax.axhline(0.0, color=DEFAULT_COLORS['constraint'], linestyle=':')
    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Cross-track error (m)')
    ax.set_title(f'CTE (RMS {result.rms_cte:.3f}m, max {result.max_abs_cte:.3f}m)')

    # --- Plot 3: Speed ---
    ax = axes[1, 0]
    ax.plot(result.times, result.velocities, color=DEFAULT_COLORS['driven'])
    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Speed (m/s)')
    ax.set_title('Speed')

    # --- Plot 4: Commands ---
    ax = axes[1, 1]
    n = len(result.steering_history)
    ax.step(result.times[:n], result.steering_history, where='post',
            color=DEFAULT_COLORS['steering'], label='Steering')
    ax.step(result.times[:n], result.throttle_history, where='post',
            color=DEFAULT_COLORS['throttle'], label='Throttle')
    lo, hi = get_command_bounds()
    ax.axhline(lo, color=DEFAULT_COLORS['constraint'], linestyle='--', alpha=0.5)
    ax.axhline(hi, color=DEFAULT_COLORS['constraint'], linestyle='--', alpha=0.5)
    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Command')
    ax.set_title('Normalized commands')
    ax.legend()

    plt.suptitle(title or f'Closed-loop run on {track_model.name}', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Closed-loop plot saved to {save_path}")

    return fig


def plot_cycle(command, title=None, save_path=None):
    """Body-frame view of one cycle: reference vs predicted trajectory."""
    apply_plot_style()
    fig, ax = plt.subplots(figsize=(8, 6))

    ax.plot(command.reference_x, command.reference_y, 'o-',
            color=DEFAULT_COLORS['reference'], label='Reference')
    ax.plot(command.predicted_trajectory_x, command.predicted_trajectory_y, '.-',
            color=DEFAULT_COLORS['predicted'], label='MPC prediction')
    ax.plot(0.0, 0.0, '>', color=DEFAULT_COLORS['car'], markersize=12, label='Vehicle')

    ax.set_xlabel('x forward (m)')
    ax.set_ylabel('y left (m)')
    ax.set_title(title or f'steer {command.steering_angle:+.3f}, '
                          f'throttle {command.throttle:+.3f} ({command.status})')
    ax.set_aspect('equal')
    ax.legend()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig
