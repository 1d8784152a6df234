'''
Defines the classes that propagate body states:

* `propagatorSettings` - rotational/translational state blocks, termination criteria and dependent variables
* `dynamicsSimulator` - integration loop, state/dependent variable histories, ephemeris installation
* `Simulation` - builds and runs a `DynamicsSimulator` from a simulation definition (.spindle) file
'''

# Make the classes in all submodules importable directly from SPINDLE.SimulationRunners
from .propagatorSettings import *
from .dynamicsSimulator import *
from .SingleSimulations import *

subModules = [ propagatorSettings, dynamicsSimulator, SingleSimulations ]

__all__ = [ ]

for subModule in subModules:
    __all__ += subModule.__all__
