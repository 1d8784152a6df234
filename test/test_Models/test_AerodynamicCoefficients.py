import unittest

import numpy as np

from SPINDLE.IO import SimDefinition, SubDictReader
from SPINDLE.Models import (AerodynamicCoefficients,
                            aerodynamicCoefficientsFactory, getDynamicPressure)
from test.testUtilities import assertIterablesAlmostEqual


class TestAerodynamicCoefficients(unittest.TestCase):
    def setUp(self):
        self.coefficients = AerodynamicCoefficients(4.0, 2.0, [ 1.5, 0.0, 0.3 ], momentCoefficients=[ 0.01, 0, 0 ],
            momentCoefficientAlphaDerivatives=[ 0, -0.1, 0 ], momentCoefficientBetaDerivatives=[ 0, 0, 0.1 ])

    def test_DynamicPressure(self):
        self.assertAlmostEqual(getDynamicPressure(1.225, 100), 6125.0)
        self.assertAlmostEqual(getDynamicPressure(0.0, 7500), 0.0)

    def test_Force(self):
        q = 1000.0
        # Drag acts against the airspeed (-X aero), lift along -Z aero
        assertIterablesAlmostEqual(self, self.coefficients.getForceInAerodynamicFrame(q, 0.3, 0.1), [ -6000, 0, -1200 ])

    def test_Moment(self):
        q = 1000.0
        angleOfAttack, sideslip = 0.3, 0.1
        expected = q * 4.0 * 2.0 * np.array([ 0.01, -0.1*angleOfAttack, 0.1*sideslip ])
        assertIterablesAlmostEqual(self, self.coefficients.getMomentInBodyFrame(q, angleOfAttack, sideslip), expected)

        # Restoring moments vanish at zero angles, leaving the constant coefficients
        assertIterablesAlmostEqual(self, self.coefficients.getMomentCoefficients(), [ 0.01, 0, 0 ])

    def test_Factory(self):
        simDef = SimDefinition(dictionary={
            "Bodies.Capsule.class": "Vehicle",
            "Bodies.Capsule.Aero.referenceArea": "4",
            "Bodies.Capsule.Aero.referenceLength": "2",
            "Bodies.Capsule.Aero.forceCoefficients": "(1.5 0 0.3)",
            "Bodies.Capsule.Aero.momentCoefficientAlphaDerivatives": "(0 -0.1 0)",
            "Bodies.Orbiter.class": "Vehicle",
            "Bodies.Orbiter.Aero.forceCoefficients": "(1.5 0)",
        }, silent=True)

        coefficients = aerodynamicCoefficientsFactory(SubDictReader("Bodies.Capsule.Aero", simDef))
        self.assertEqual(coefficients.referenceArea, 4)
        self.assertEqual(coefficients.referenceLength, 2)
        assertIterablesAlmostEqual(self, coefficients.forceCoefficients, [ 1.5, 0, 0.3 ])
        assertIterablesAlmostEqual(self, coefficients.momentCoefficientAlphaDerivatives, [ 0, -0.1, 0 ])
        # Missing values come from the Vehicle defaults
        assertIterablesAlmostEqual(self, coefficients.momentCoefficientBetaDerivatives, [ 0, 0, 0 ])

        with self.assertRaises(ValueError):
            aerodynamicCoefficientsFactory(SubDictReader("Bodies.Orbiter.Aero", simDef))

#If this file is run by itself, run the tests above
if __name__ == '__main__':
    unittest.main()
