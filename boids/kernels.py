"""Numba JIT-compiled step kernel - the CPU twin of stepBoid in boids.metal."""

import math
import numpy as np
from numba import njit, prange


EPS_DIST_SQ = 1e-12
EPS_LENGTH = 1e-6


# ============================================================================
# STEP KERNEL
# ============================================================================

@njit(parallel=True, fastmath=True, cache=True)
def step_boids(
    pos_in: np.ndarray,
    vel_in: np.ndarray,
    forces: np.ndarray,
    num_forces: int,
    pos_out: np.ndarray,
    vel_out: np.ndarray,
    neighbour_radius_sq: float,
    alignment_weight: float,
    separation_weight: float,
    cohesion_weight: float,
    delta_time: float,
    x_bounds: float,
    y_bounds: float,
    z_bounds: float,
    bounds_weight: float,
    boid_speed: float,
    reaction_factor: float,
    num_boids: int
):
    """
    Advance every boid one step, reading only *_in and writing only *_out.

    pos/vel arrays are (n, 4) float32 with the w lane unused.
    forces is (m, 5) float32: radius, strength, x, y, z. Only the first
    num_forces rows are read.
    """
    for i in prange(num_boids):
        px, py, pz = pos_in[i, 0], pos_in[i, 1], pos_in[i, 2]
        vx, vy, vz = vel_in[i, 0], vel_in[i, 1], vel_in[i, 2]

        align_x, align_y, align_z = 0.0, 0.0, 0.0
        sep_x, sep_y, sep_z = 0.0, 0.0, 0.0
        coh_x, coh_y, coh_z = 0.0, 0.0, 0.0
        neighbour_count = 0
        sep_count = 0

        # Brute-force neighbour pass
        for j in range(num_boids):
            if i == j:
                continue

            dx = px - pos_in[j, 0]
            dy = py - pos_in[j, 1]
            dz = pz - pos_in[j, 2]
            dist_sq = dx * dx + dy * dy + dz * dz

            if dist_sq <= neighbour_radius_sq:
                align_x += vel_in[j, 0]
                align_y += vel_in[j, 1]
                align_z += vel_in[j, 2]

                coh_x += pos_in[j, 0]
                coh_y += pos_in[j, 1]
                coh_z += pos_in[j, 2]

                # Push away harder the closer the neighbour is
                if dist_sq > EPS_DIST_SQ:
                    sep_x += dx / dist_sq
                    sep_y += dy / dist_sq
                    sep_z += dz / dist_sq
                    sep_count += 1

                neighbour_count += 1

        # Rules only, the previous velocity enters through smoothing
        des_x, des_y, des_z = 0.0, 0.0, 0.0

        if neighbour_count > 0:
            inv = 1.0 / neighbour_count
            des_x += alignment_weight * align_x * inv
            des_y += alignment_weight * align_y * inv
            des_z += alignment_weight * align_z * inv

            des_x += cohesion_weight * (coh_x * inv - px)
            des_y += cohesion_weight * (coh_y * inv - py)
            des_z += cohesion_weight * (coh_z * inv - pz)

        if sep_count > 0:
            inv = 1.0 / sep_count
            des_x += separation_weight * sep_x * inv
            des_y += separation_weight * sep_y * inv
            des_z += separation_weight * sep_z * inv

        # Attractors pull in, repellors push out
        for k in range(num_forces):
            radius = forces[k, 0]
            strength = forces[k, 1]
            tx = forces[k, 2] - px
            ty = forces[k, 3] - py
            tz = forces[k, 4] - pz
            dist = math.sqrt(tx * tx + ty * ty + tz * tz)
            if dist > EPS_LENGTH and dist <= radius:
                scale = strength / (dist * dist)
                des_x += tx * scale
                des_y += ty * scale
                des_z += tz * scale

        # Steer back inside the bounds
        if px > x_bounds:
            des_x -= bounds_weight * (px - x_bounds)
        elif px < -x_bounds:
            des_x += bounds_weight * (-x_bounds - px)
        if py > y_bounds:
            des_y -= bounds_weight * (py - y_bounds)
        elif py < -y_bounds:
            des_y += bounds_weight * (-y_bounds - py)
        if pz > z_bounds:
            des_z -= bounds_weight * (pz - z_bounds)
        elif pz < -z_bounds:
            des_z += bounds_weight * (-z_bounds - pz)

        # Exponential smoothing toward the desired heading
        keep = reaction_factor
        nx = des_x * (1.0 - keep) + vx * keep
        ny = des_y * (1.0 - keep) + vy * keep
        nz = des_z * (1.0 - keep) + vz * keep

        vel_out[i, 0] = nx
        vel_out[i, 1] = ny
        vel_out[i, 2] = nz
        vel_out[i, 3] = 0.0

        step = boid_speed * delta_time
        pos_out[i, 0] = px + nx * step
        pos_out[i, 1] = py + ny * step
        pos_out[i, 2] = pz + nz * step
        pos_out[i, 3] = 0.0


def warmup():
    """Compile step_boids on a tiny problem so the first real frame doesn't stall."""
    n = 8
    pos = (np.random.rand(n, 4).astype(np.float32) - 0.5) * 2.0
    vel = np.random.rand(n, 4).astype(np.float32)
    forces = np.zeros((1, 5), dtype=np.float32)
    out_pos = np.zeros_like(pos)
    out_vel = np.zeros_like(vel)
    step_boids(
        pos, vel, forces, 0, out_pos, out_vel,
        2.25, 1.0, 1.0, 1.0, 0.016, 15.0, 6.0, 1.5, 2.0, 7.0, 0.9, n
    )
