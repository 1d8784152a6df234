''' These classes model the gravity field of a central body, and perform coordinate conversions in its body-fixed frame '''

from abc import ABC, abstractmethod
from math import asin, atan2, cos, sin, sqrt

import numpy as np
from numpy.polynomial import legendre

__all__ = [ "gravityModelFactory", "PointMassGravity", "ZonalGravity", "cartesianToSpherical", "sphericalToCartesian",
    "EARTH_RADIUS", "EARTH_GM", "EARTH_ROTATION_RATE", "EARTH_ZONAL_COEFFICIENTS" ]

EARTH_RADIUS = 6378137.0 # m, WGS84 semi-major axis, reference radius of the zonal coefficients below
EARTH_GM = 3.986004418e14 # m^3/s^2
EARTH_ROTATION_RATE = 7.292115e-5 # rad/s - from WGS84 model. Defined WRT stars (not our sun)
EARTH_ZONAL_COEFFICIENTS = [ 1.08262668e-3, -2.53265649e-6, -1.61962159e-6 ] # J2, J3, J4 (EGM96, unnormalized)

def cartesianToSpherical(position):
    '''
        Position in a body-fixed frame (Z along the rotation axis) -> (radius, latitude, longitude). Angles in radians.
        Latitude is geocentric. At the poles longitude is returned as atan2(y, x), which may be 0
    '''
    x, y, z = position
    radius = sqrt(x*x + y*y + z*z)
    latitude = asin(z / radius)
    longitude = atan2(y, x)
    return radius, latitude, longitude

def sphericalToCartesian(radius, latitude, longitude) -> np.ndarray:
    return np.array([
        radius * cos(latitude) * cos(longitude),
        radius * cos(latitude) * sin(longitude),
        radius * sin(latitude)
    ])

class CentralGravityModel(ABC):
    ''' Interface for all central body gravity models. Accelerations are returned in the central body's body-fixed frame '''

    def __init__(self, gravitationalParameter):
        self.gravitationalParameter = gravitationalParameter

    @abstractmethod
    def getGravitationalAcceleration(self, bodyFixedPosition) -> np.ndarray:
        ''' bodyFixedPosition: position of the accelerated body relative to the central body's center of mass, in the central body's body-fixed frame '''
        return

    def _getPointMassAcceleration(self, position) -> np.ndarray:
        radius = np.linalg.norm(position)
        return -self.gravitationalParameter * position / radius**3

class PointMassGravity(CentralGravityModel):
    def getGravitationalAcceleration(self, bodyFixedPosition):
        return self._getPointMassAcceleration(np.asarray(bodyFixedPosition, dtype=np.float64))

class ZonalGravity(CentralGravityModel):
    '''
        Axially symmetric gravity field: point mass + zonal terms J2..Jn (degree n, order 0 spherical harmonics).
        Potential: U = GM/r * ( 1 - sum_n Jn (R/r)^n Pn(sin(lat)) )
    '''
    def __init__(self, gravitationalParameter, referenceRadius, zonalCoefficients):
        '''
            zonalCoefficients: unnormalized [ J2, J3, ..., Jn ]
        '''
        super().__init__(gravitationalParameter)
        self.referenceRadius = referenceRadius
        self.zonalCoefficients = list(zonalCoefficients)

        # Legendre series coefficients for Pn and dPn/ds, one pair per degree
        self._legendreSeries = []
        for i in range(len(self.zonalCoefficients)):
            degree = i + 2
            seriesCoefficients = np.zeros(degree + 1)
            seriesCoefficients[degree] = 1.0
            self._legendreSeries.append((degree, seriesCoefficients, legendre.legder(seriesCoefficients)))

    @property
    def maximumDegree(self) -> int:
        return len(self.zonalCoefficients) + 1

    def getGravitationalAcceleration(self, bodyFixedPosition):
        position = np.asarray(bodyFixedPosition, dtype=np.float64)
        acceleration = self._getPointMassAcceleration(position)

        radius = np.linalg.norm(position)
        radialUnitVector = position / radius
        s = radialUnitVector[2] # sin(latitude)
        zUnitVector = np.array([ 0.0, 0.0, 1.0 ])

        GM, R = self.gravitationalParameter, self.referenceRadius
        for J, (degree, Pn, dPn) in zip(self.zonalCoefficients, self._legendreSeries):
            # grad( -GM*Jn*R^n*Pn(s) / r^(n+1) )
            coefficient = GM * J * R**degree / radius**(degree + 2)
            acceleration += coefficient * ( (degree + 1)*legendre.legval(s, Pn)*radialUnitVector - legendre.legval(s, dPn)*(zUnitVector - s*radialUnitVector) )

        return acceleration

def gravityModelFactory(gravityDictReader=None) -> CentralGravityModel:
    '''
        Provide a gravityDictReader (`SPINDLE.IO.SubDictReader`), pointed at a central body's dictionary. If none is provided, returns Earth's point mass model

        Reads:
            gravityModel:               'PointMass' or 'Zonal'
            gravitationalParameter
            radius:                     (Zonal only) reference radius
            zonalCoefficients:          (Zonal only) J2 J3 ... Jn
    '''
    if gravityDictReader is None:
        return PointMassGravity(EARTH_GM)

    modelName = gravityDictReader.getString("gravityModel")
    GM = gravityDictReader.getFloat("gravitationalParameter")

    if modelName == "PointMass":
        return PointMassGravity(GM)
    elif modelName == "Zonal":
        radius = gravityDictReader.getFloat("radius")
        zonalCoefficients = gravityDictReader.getVector("zonalCoefficients")
        return ZonalGravity(GM, radius, zonalCoefficients)
    else:
        raise NotImplementedError("Gravity model: {} not found. Try 'PointMass' or 'Zonal'".format(modelName))
