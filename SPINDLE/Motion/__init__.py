'''
Generalized rotational and translational motion functionality.
Fundamental data types and functions used throughout the simulator are defined in:

* `Quaternion` - represents orientation (scalar-first)
* `FrameTransformations` - rotation matrices/quaternions between named reference frames
* `Inertia` - stores a body's mass and inertia tensor
* `EquationsOfMotion` - quaternion kinematics, Euler's rigid body equation, Cowell translational equations

Generalized constant and adaptive time stepping integrators are defined in `Integration`
Interpolators used by tabulated ephemerides are defined in `Interpolation`
'''
# Make the classes in all submodules importable directly from SPINDLE.Motion
from .quaternion import *
from .FrameTransformations import *
from .inertia import *
from .EquationsOfMotion import *
from .Interpolation import *
from .Integration import *

subModules = [ quaternion, FrameTransformations, inertia, EquationsOfMotion, Interpolation, Integration ]

__all__ = []

for subModule in subModules:
    __all__ += subModule.__all__
