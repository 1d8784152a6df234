'''
Input/Output functionality:

* Reading/Writing Simulation Definition (.spindle) Files
* Console capture and writing of propagation histories

SPINDLE.IO does not depend on any other SPINDLE subpackage, except for a few parsing functions in `SPINDLE.Utilities`
'''
# Make the classes in all submodules importable directly from SPINDLE.IO
from .simDefinition import *
from .subDictReader import *
from .Logging import *

subModules = [ simDefinition, subDictReader, Logging ]

__all__ = []

for subModule in subModules:
    __all__ += subModule.__all__
