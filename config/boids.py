"""Configuration for the Metal/Numba boids flocking engine."""

BOIDS = {
    "count": 8000,
    "spawn_range": 2.5,        # Initial positions sampled in [-r, r] on every axis
    "device": None,            # None = auto-detect, or "metal" / "cpu"
    "seed": None,              # Fixed seed for reproducible runs
}

# Default simulation parameters marshaled into the Uniform record every frame.
# NOTE: tuned together, changing one usually means retuning the others
# (a faster flock needs more cohesion or a stronger bounds weight).
UNIFORM = {
    "neighbour_radius": 1.5,   # Any boid closer than this is a neighbour
    "alignment_weight": 2.0,   # Match neighbour heading
    "separation_weight": 2.0,  # Avoid crowding
    "cohesion_weight": 4.0,    # Move toward neighbour centre
    "x_bounds": 15.0,          # World is centred on 0: -x_bounds <= x <= x_bounds
    "y_bounds": 6.0,
    "z_bounds": 1.5,
    "bounds_weight": 2.0,      # How hard boids turn back inside the bounds
    "boid_speed": 7.0,
    "reaction_factor": 0.9,    # 0 = adopt new heading at once, 1 = never turn
}

# Attractor/repellor presets for each force mode
FORCES = {
    "single_attractor": [
        {"radius": 5.0, "strength": 3.0, "position": (0.0, 0.0, 0.0)},
    ],
    "single_repellor": [
        {"radius": 2.0, "strength": -150.0, "position": (10.0, 0.0, 0.0)},
    ],
    "mixed": [
        {"radius": 2.0, "strength": -150.0, "position": (-10.0, 0.0, 0.0)},
        {"radius": 5.0, "strength": 10.0, "position": (0.0, 0.0, 0.0)},
        {"radius": 2.0, "strength": -150.0, "position": (10.0, 0.0, 0.0)},
    ],
}

WALKER = {
    "attractor_speed": 0.0,    # Attractors stay put
    "repellor_speed": 0.02,
    "steer_weight": 0.1,       # Weight of the fresh random heading each update
    "push_back": 5.0,          # Velocity forced on an axis that left the box
}

FRAME = {
    "inflight_count": 3,       # Uniform buffers that may be in flight at once
    "max_delta_time": 0.5,     # Clamp after a pause so boids don't jump
    "acquire_timeout": None,   # Seconds to wait for a free slot (None = block)
    "status_interval": 120,    # Frames between status lines
    "pause_poll": 0.01,        # Seconds run() sleeps per check while paused
}
