'''
Models evaluated during propagation, from the current states in a `SPINDLE.ENV.NamedBodyMap`:

* `TorqueModels` - body-frame torques, summed by `TorqueModelAggregator`
* `AccelerationModels` - inertial accelerations, summed by `AccelerationModelAggregator`
* `aerodynamicAngles` - latitude, longitude, heading, flight path, angle of attack, sideslip, bank, and the frame rotations they define
* `aerodynamicCoefficients` - aerodynamic forces and moments from coefficients
'''
# Make the classes in all submodules importable directly from SPINDLE.Models
from .aerodynamicAngles import *
from .aerodynamicCoefficients import *
from .TorqueModels import *
from .AccelerationModels import *

subModules = [ aerodynamicAngles, aerodynamicCoefficients, TorqueModels, AccelerationModels ]

__all__ = []

for subModule in subModules:
    __all__ += subModule.__all__
