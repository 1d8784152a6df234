import unittest
from math import pi

import numpy as np
from numpy.polynomial import legendre

from SPINDLE.ENV import (EARTH_GM, EARTH_RADIUS, EARTH_ZONAL_COEFFICIENTS,
                         PointMassGravity, ZonalGravity, cartesianToSpherical,
                         gravityModelFactory, sphericalToCartesian)
from SPINDLE.IO import SimDefinition, SubDictReader
from test.testUtilities import (assertIterablesAlmostEqual,
                                assertMaxAbsDifferenceBelow)


def zonalPotential(position, GM, R, zonalCoefficients):
    r = np.linalg.norm(position)
    s = position[2] / r
    potential = GM / r
    for i, J in enumerate(zonalCoefficients):
        degree = i + 2
        Pn = np.zeros(degree + 1)
        Pn[degree] = 1.0
        potential -= GM / r * J * (R/r)**degree * legendre.legval(s, Pn)
    return potential

class TestSphericalConversions(unittest.TestCase):
    def test_Conversions(self):
        radius, latitude, longitude = cartesianToSpherical([ 0, 7e6, 0 ])
        self.assertAlmostEqual(radius, 7e6)
        self.assertAlmostEqual(latitude, 0)
        self.assertAlmostEqual(longitude, pi/2)

        radius, latitude, longitude = cartesianToSpherical([ 0, 0, -6e6 ])
        self.assertAlmostEqual(latitude, -pi/2)

        for position in [ [ 1e6, -2e6, 3e6 ], [ -7e6, -1, 0.5e6 ] ]:
            assertIterablesAlmostEqual(self, sphericalToCartesian(*cartesianToSpherical(position)), position, 5)

class TestGravityModels(unittest.TestCase):
    def test_PointMass(self):
        gravity = PointMassGravity(EARTH_GM)
        r = 7e6
        assertIterablesAlmostEqual(self, gravity.getGravitationalAcceleration([ r, 0, 0 ]), [ -EARTH_GM/r**2, 0, 0 ])

        position = np.array([ 3e6, -4e6, 5e6 ])
        acceleration = gravity.getGravitationalAcceleration(position)
        # Points towards the center
        assertIterablesAlmostEqual(self, np.cross(acceleration, position) / np.linalg.norm(position)**2, [ 0, 0, 0 ], 12)
        self.assertLess(np.dot(acceleration, position), 0)

    def test_J2MatchesClassicalExpression(self):
        J2 = EARTH_ZONAL_COEFFICIENTS[0]
        gravity = ZonalGravity(EARTH_GM, EARTH_RADIUS, [ J2 ])
        self.assertEqual(gravity.maximumDegree, 2)

        x, y, z = 4.1e6, -3.3e6, 4.4e6
        r = np.linalg.norm([ x, y, z ])
        factor = 1.5 * J2 * (EARTH_RADIUS / r)**2
        expected = -EARTH_GM / r**3 * np.array([
            x * (1 - factor*(5*z**2/r**2 - 1)),
            y * (1 - factor*(5*z**2/r**2 - 1)),
            z * (1 - factor*(5*z**2/r**2 - 3))
        ])
        assertMaxAbsDifferenceBelow(self, gravity.getGravitationalAcceleration([ x, y, z ]), expected, 1e-12)

    def test_ZonalAccelerationIsPotentialGradient(self):
        gravity = ZonalGravity(EARTH_GM, EARTH_RADIUS, EARTH_ZONAL_COEFFICIENTS)
        self.assertEqual(gravity.maximumDegree, 4)

        position = np.array([ 2.5e6, 5.1e6, -3.7e6 ])
        h = 1.0
        numericalGradient = np.zeros(3)
        for i in range(3):
            offset = np.zeros(3)
            offset[i] = h
            numericalGradient[i] = (zonalPotential(position + offset, EARTH_GM, EARTH_RADIUS, EARTH_ZONAL_COEFFICIENTS) - \
                zonalPotential(position - offset, EARTH_GM, EARTH_RADIUS, EARTH_ZONAL_COEFFICIENTS)) / (2*h)

        assertMaxAbsDifferenceBelow(self, gravity.getGravitationalAcceleration(position), numericalGradient, 1e-6)

    def test_ZonalTermsAreSmallPerturbations(self):
        pointMass = PointMassGravity(EARTH_GM)
        zonal = ZonalGravity(EARTH_GM, EARTH_RADIUS, EARTH_ZONAL_COEFFICIENTS)

        position = sphericalToCartesian(EARTH_RADIUS + 120e3, 0.25, 1.2)
        difference = zonal.getGravitationalAcceleration(position) - pointMass.getGravitationalAcceleration(position)
        relativeDifference = np.linalg.norm(difference) / np.linalg.norm(pointMass.getGravitationalAcceleration(position))
        self.assertGreater(relativeDifference, 1e-4)
        self.assertLess(relativeDifference, 1e-2)

        # On the polar axis, zonal terms only act along the axis
        polarDifference = zonal.getGravitationalAcceleration([ 0, 0, 7e6 ]) - pointMass.getGravitationalAcceleration([ 0, 0, 7e6 ])
        assertIterablesAlmostEqual(self, polarDifference[:2], [ 0, 0 ], 12)

    def test_GravityModelFactory(self):
        self.assertIsInstance(gravityModelFactory(), PointMassGravity)

        simDef = SimDefinition(dictionary={
            "Bodies.Earth.class": "CentralBody",
            "Bodies.Earth.gravityModel": "Zonal",
            "Bodies.Mars.class": "CentralBody",
            "Bodies.Mars.gravitationalParameter": "4.282837e13",
            "Bodies.Pluto.class": "CentralBody",
            "Bodies.Pluto.gravityModel": "Mascons",
        }, silent=True)

        earthGravity = gravityModelFactory(SubDictReader("Bodies.Earth", simDef))
        self.assertIsInstance(earthGravity, ZonalGravity)
        self.assertEqual(earthGravity.referenceRadius, EARTH_RADIUS)
        assertIterablesAlmostEqual(self, earthGravity.zonalCoefficients, EARTH_ZONAL_COEFFICIENTS, 15)

        marsGravity = gravityModelFactory(SubDictReader("Bodies.Mars", simDef))
        self.assertIsInstance(marsGravity, PointMassGravity)
        self.assertEqual(marsGravity.gravitationalParameter, 4.282837e13)

        with self.assertRaises(NotImplementedError):
            gravityModelFactory(SubDictReader("Bodies.Pluto", simDef))

#If this file is run by itself, run the tests above
if __name__ == '__main__':
    unittest.main()
