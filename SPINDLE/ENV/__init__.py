'''
Environment and body modelling: main classes are `SPINDLE.ENV.Body` and `SPINDLE.ENV.NamedBodyMap`.
Bodies own their inertia, ephemerides (`SPINDLE.ENV.Ephemerides`), gravity models (`SPINDLE.ENV.EarthModelling`) and atmospheric models (`SPINDLE.ENV.AtmosphereModelling`).
'''
# Make the classes in all submodules importable directly from SPINDLE.ENV
from .EarthModelling import *
from .AtmosphereModelling import *
from .Ephemerides import *
from .environment import *

subModules = [ EarthModelling, AtmosphereModelling, Ephemerides, environment ]

__all__ = []

for subModule in subModules:
    __all__ += subModule.__all__
