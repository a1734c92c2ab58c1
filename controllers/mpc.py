"""
Receding-horizon trajectory optimizer

Decision variables over a horizon of N steps:
    X : 6 x N      states [x, y, psi, v, cte, epsi]
    U : 2 x (N-1)  actuations [delta, a]

    min  Σ_k  w_cte·cte² + w_epsi·epsi² + w_v·(v - v_ref)²
       + Σ_k  w_delta·delta² + w_a·a²
       + Σ_k  w_delta_rate·(Δdelta)² + w_a_rate·(Δa)²
    s.t. X[:, 0] = x0                         (initial state pinned)
         X[:, k+1] = F(X[:, k], U[:, k])      (kinematic bicycle, k = 0..N-2)
         |delta| ≤ steering_max, |a| ≤ 1

The NLP is built once with the initial state and the reference coefficients as
parameters and solved with IPOPT; CasADi supplies the exact Jacobian and
Lagrangian Hessian.
"""
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import casadi as ca
import numpy as np

from config import MPCConfig, VehicleConfig
from models import KinematicBicycleModel, ReferenceCurve, SolverError, check_invariant
from models.kinematics import N_STATES, N_CONTROLS, X, Y


@dataclass
class WarmStart:
    """Actuation sequence seeding the next solve"""
    controls: np.ndarray        # (N-1) x 2


@dataclass
class MPCSolution:
    """Optimizer output for one cycle"""
    states: np.ndarray          # N x 6
    controls: np.ndarray        # (N-1) x 2, clipped to actuator bounds
    status: str                 # IPOPT return status
    iterations: int
    cost: float
    solve_time: float           # Computation time (s)

    @property
    def first_control(self) -> Tuple[float, float]:
        """(delta[0], a[0]) - the command for this cycle"""
        return float(self.controls[0, 0]), float(self.controls[0, 1])

    @property
    def predicted_x(self) -> np.ndarray:
        return self.states[1:, X]

    @property
    def predicted_y(self) -> np.ndarray:
        return self.states[1:, Y]

    def shifted(self) -> WarmStart:
        """Drop the applied actuation and repeat the last one."""
        controls = np.vstack([self.controls[1:], self.controls[-1:]])
        return WarmStart(controls=controls)


class TrajectoryMPC:
    """
    MPC for path tracking with a kinematic bicycle model.

    Each call to solve() is independent apart from the optional warm start,
    which the caller passes in explicitly.
    """

    def __init__(self,
                 vehicle_config: Optional[VehicleConfig] = None,
                 config: Optional[MPCConfig] = None,
                 poly_degree: int = 3):
        self.vehicle = vehicle_config or VehicleConfig()
        self.config = config or MPCConfig()
        self.model = KinematicBicycleModel(self.vehicle)
        self.poly_degree = poly_degree

        self.N = self.config.horizon_steps
        self.dt = self.config.dt
        self.verbose = self.config.verbose

        # Performance tracking
        self.solve_count = 0
        self.fail_count = 0
        self.total_solve_time = 0.0

        self._build_mpc_problem()

    @property
    def name(self) -> str:
        return "TrajectoryMPC"

    def _log(self, message: str):
        """Print message if verbose mode is on"""
        if self.verbose:
            print(f"   [{self.name}] {message}")

    def _build_mpc_problem(self):
        """Build CasADi optimization problem for MPC"""

        N = self.N
        cfg = self.config
        opti = ca.Opti()

        # Decision variables
        X_var = opti.variable(N_STATES, N)
        U_var = opti.variable(N_CONTROLS, N - 1)

        # Parameters (set at runtime)
        x0 = opti.parameter(N_STATES)
        coeffs = opti.parameter(self.poly_degree + 1)

        def f(x):
            return sum(coeffs[i] * x**i for i in range(self.poly_degree + 1))

        def psi_des(x):
            slope = sum(i * coeffs[i] * x**(i - 1) for i in range(1, self.poly_degree + 1))
            return ca.atan(slope)

        # =====================================================
        # OBJECTIVE: tracking + actuation magnitude + smoothness
        # =====================================================

        tracking_cost = 0
        actuation_cost = 0
        smoothness_cost = 0

        for k in range(N):
            tracking_cost += cfg.w_cte * X_var[4, k]**2
            tracking_cost += cfg.w_epsi * X_var[5, k]**2
            tracking_cost += cfg.w_v * (X_var[3, k] - cfg.ref_v)**2

        for k in range(N - 1):
            actuation_cost += cfg.w_delta * U_var[0, k]**2
            actuation_cost += cfg.w_a * U_var[1, k]**2

        for k in range(N - 2):
            smoothness_cost += cfg.w_delta_rate * (U_var[0, k+1] - U_var[0, k])**2
            smoothness_cost += cfg.w_a_rate * (U_var[1, k+1] - U_var[1, k])**2

        objective = tracking_cost + actuation_cost + smoothness_cost
        opti.minimize(objective)

        # =====================================================
        # DYNAMICS
        # =====================================================

        opti.subject_to(X_var[:, 0] == x0)

        for k in range(N - 1):
            nxt = self.model.error_step(X_var[:, k], U_var[:, k], f, psi_des, self.dt)
            opti.subject_to(X_var[:, k+1] == ca.vertcat(*nxt))

        # =====================================================
        # CONSTRAINTS
        # =====================================================

        cons = self.vehicle.get_constraints()
        opti.subject_to(opti.bounded(cons['delta_min'], U_var[0, :], cons['delta_max']))
        opti.subject_to(opti.bounded(cons['a_min'], U_var[1, :], cons['a_max']))

        # =====================================================
        # SOLVER SETUP
        # =====================================================

        opts = {
            'ipopt.max_iter': cfg.max_iter,
            'ipopt.max_wall_time': cfg.solve_time_limit,
            'ipopt.print_level': 0 if not self.verbose else 3,
            'ipopt.sb': 'yes',
            'print_time': 0,
            'ipopt.tol': cfg.tol,
            'ipopt.acceptable_tol': cfg.acceptable_tol,
            'ipopt.acceptable_iter': 5,
            'ipopt.linear_solver': 'mumps',
        }
        opti.solver('ipopt', opts)

        # Store problem
        self.opti = opti
        self.objective = objective
        self.vars = {'X': X_var, 'U': U_var}
        self.params = {'x0': x0, 'coeffs': coeffs}
        self.solver_options = opts

    def solve(self,
              state: np.ndarray,
              reference: ReferenceCurve,
              warm_start: Optional[WarmStart] = None) -> MPCSolution:
        """
        Solve one MPC step.

        Args:
            state: [x, y, psi, v, cte, epsi] at the planning origin
            reference: Body-frame reference curve
            warm_start: Optional shifted actuation sequence from the previous cycle

        Returns:
            MPCSolution

        Raises:
            SolverError: IPOPT failed to converge (infeasible, iteration or time cap)
        """
        state = np.asarray(state, dtype=float).ravel()
        check_invariant(state.size == N_STATES, f"state must have {N_STATES} entries, got {state.size}")
        if reference.degree != self.poly_degree:
            raise ValueError(f"Reference degree {reference.degree} != {self.poly_degree}")

        self.opti.set_value(self.params['x0'], state)
        self.opti.set_value(self.params['coeffs'], reference.coeffs)

        U_init = self._initial_controls(warm_start)
        X_init = self._rollout(state, U_init, reference)
        self.opti.set_initial(self.vars['X'], X_init.T)
        self.opti.set_initial(self.vars['U'], U_init.T)

        start = time.time()
        try:
            sol = self.opti.solve()
        except RuntimeError as e:
            solve_time = time.time() - start
            self.fail_count += 1
            self.total_solve_time += solve_time
            status = self._return_status()
            self._log(f"❌ Solve failed after {solve_time*1000:.1f}ms: {status}")
            raise SolverError(f"MPC solve failed: {status}", status=status) from e

        solve_time = time.time() - start
        stats = sol.stats()

        states = np.asarray(sol.value(self.vars['X'])).reshape(N_STATES, self.N).T
        controls = np.asarray(sol.value(self.vars['U'])).reshape(N_CONTROLS, self.N - 1).T

        # Interior-point iterates may sit a hair outside the bounds
        cons = self.vehicle.get_constraints()
        controls[:, 0] = np.clip(controls[:, 0], cons['delta_min'], cons['delta_max'])
        controls[:, 1] = np.clip(controls[:, 1], cons['a_min'], cons['a_max'])

        self.solve_count += 1
        self.total_solve_time += solve_time

        solution = MPCSolution(
            states=states,
            controls=controls,
            status=stats.get('return_status', 'unknown'),
            iterations=int(stats.get('iter_count', 0)),
            cost=float(sol.value(self.objective)),
            solve_time=solve_time,
        )
        self._log(f"✓ {solution.status} in {solution.iterations} it, "
                  f"{solve_time*1000:.1f}ms, cost {solution.cost:.3f}")
        return solution

    def _return_status(self) -> str:
        """IPOPT status of the last solve attempt"""
        try:
            return str(self.opti.stats().get('return_status', 'unknown'))
        except RuntimeError:
            # No solver call has completed yet
            return 'unknown'

    def _initial_controls(self, warm_start: Optional[WarmStart]) -> np.ndarray:
        """Zero actuation, or the warm start when its shape matches the horizon."""
        U_init = np.zeros((self.N - 1, N_CONTROLS))
        if warm_start is not None:
            controls = np.asarray(warm_start.controls, dtype=float)
            if controls.shape == U_init.shape and np.all(np.isfinite(controls)):
                U_init = controls.copy()
            else:
                self._log(f"Ignoring warm start of shape {controls.shape}")
        return U_init

    def _rollout(self, state: np.ndarray, controls: np.ndarray,
                 reference: ReferenceCurve) -> np.ndarray:
        """
        Initial state guess.

        Without actuation the guess is the input state held constant; with a
        warm start the states are simulated forward so the guess is feasible.
        """
        states = np.tile(state, (self.N, 1))
        if not np.any(controls):
            return states
        for k in range(self.N - 1):
            states[k + 1] = self.model.error_step(
                states[k], controls[k], reference, reference.desired_heading, self.dt
            )
        return states

    def get_statistics(self) -> Dict:
        """Get performance statistics."""
        total = self.solve_count + self.fail_count
        return {
            'solve_count': self.solve_count,
            'fail_count': self.fail_count,
            'success_rate': 100 * self.solve_count / max(total, 1),
            'avg_solve_time': self.total_solve_time / max(total, 1),
        }
