''' These classes model the change of air properties (Pressure, Density, etc... with altitude) '''

import abc
from math import exp
from typing import Sequence

__all__ = [ "atmosphericModelFactory", "ConstantAtmosphere", "ExponentialAtmosphere" ]

class AtmosphericModel(abc.ABC):
    ''' Interface for all atmosphere models '''

    @abc.abstractmethod
    def getAirProperties(self, altitude: float, time: float) -> Sequence[float]:
        '''
            Should return an iterable containing:
                temp(K),
                static pressure (Pa),
                density (kg/m^3),
            in that order
        '''
        return

    def getDensity(self, altitude: float, time: float=0) -> float:
        return self.getAirProperties(altitude, time)[2]

def atmosphericModelFactory(atmosphericModel=None, atmosphereDictReader=None) -> AtmosphericModel:
    '''
        Provide either an atmosphericModel name ('Exponential' uses Earth's default parameters),
            or provide an atmosphereDictReader (`SPINDLE.IO.SubDictReader`) pointed at a central body's dictionary
    '''
    if atmosphericModel is None:
        atmosphericModel = atmosphereDictReader.getString("atmosphereModel")

    if atmosphericModel == "Constant":
        if atmosphereDictReader is None:
            raise ValueError("atmosphereDictReader required to initialize Constant atm properties model")

        constTemp = atmosphereDictReader.getFloat("ConstantAtmosphere.temp") + 273.15 # Convert to Kelvin (Expecting Celsius input)
        constPressure = atmosphereDictReader.getFloat("ConstantAtmosphere.pressure")
        constDensity = atmosphereDictReader.getFloat("ConstantAtmosphere.density")

        return ConstantAtmosphere(constTemp, constPressure, constDensity)

    elif atmosphericModel == "Exponential":
        if atmosphereDictReader is None:
            return ExponentialAtmosphere()

        return ExponentialAtmosphere(
            scaleHeight=atmosphereDictReader.getFloat("ExponentialAtmosphere.scaleHeight"),
            surfaceDensity=atmosphereDictReader.getFloat("ExponentialAtmosphere.surfaceDensity"),
            temperature=atmosphereDictReader.getFloat("ExponentialAtmosphere.temperature"),
            specificGasConstant=atmosphereDictReader.getFloat("ExponentialAtmosphere.specificGasConstant")
        )

    elif atmosphericModel == "None":
        return None

    else:
        raise ValueError("Atmospheric model: {} not implemented, try using 'Exponential' or 'Constant'".format(atmosphericModel))

class ConstantAtmosphere(AtmosphericModel):
    def __init__(self, temp, pressure, density):
        self.airProperties = [ temp, pressure, density ]

    def getAirProperties(self, _, _2=None):
        return self.airProperties

class ExponentialAtmosphere(AtmosphericModel):
    '''
        Isothermal atmosphere, density decays exponentially with altitude:
            rho = surfaceDensity * exp(-altitude/scaleHeight)
            P = rho * R * T
        Defaults are Earth values
    '''
    def __init__(self, scaleHeight=7.2e3, surfaceDensity=1.225, temperature=246.0, specificGasConstant=287.0):
        self.scaleHeight = scaleHeight
        self.surfaceDensity = surfaceDensity
        self.temperature = temperature
        self.specificGasConstant = specificGasConstant

    def getAirProperties(self, altitude, time=None):
        density = self.surfaceDensity * exp(-altitude / self.scaleHeight)
        pressure = density * self.specificGasConstant * self.temperature
        return [ self.temperature, pressure, density ]
