import math

# Number of fish/agents
boid_count: int = 8

# Half extents of the world, agents are steered back inside
# Default: a 720x1280 portrait window at quarter scale
bounds: tuple[float, float] = (720 / 4, 1280 / 4)

# Speed limits, in world units per second
# Agents never stop, the minimum keeps their heading well defined
min_speed: float = 100.0
max_speed: float = 150.0

# Width of the band along each edge where agents start turning back, as a fraction of the bounds
# Used when no explicit margin is given
# Default: 1/4
margin_fraction: float = 1 / 4

# Velocity nudge per frame while inside the margin band
turn_factor: float = 1.0

# Flocking strengths
separation_factor: float = 0.025
cohesion_factor: float = 0.0005
alignment_factor: float = 0.01

# Interaction ranges, stored squared
view_radius_squared: float = 24.0**2
separation_radius_squared: float = 12.0**2

# Distance between consecutive joints of a spine
link_separation: float = 20.0

# How far ahead of the head the spine is pulled, per second
race_ahead_speed: float = 350.0

# Smallest angle a spine may bend to at any joint
# Possible values: (0, pi]
# Default: pi/2
min_joint_angle: float = math.pi / 2

# Body half-width at every joint, head first
joint_sizes: tuple[float, ...] = (
    10.0, 18.0, 25.0, 23.0, 24.0, 23.0, 22.0, 21.0, 16.0, 14.0, 10.0, 6.0, 3.0, 2.0,
)

# Frame length of the fixed-step simulation
dt: float = 1 / 60

# Seed of the deterministic sample source
seed: int = 0
