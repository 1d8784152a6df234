import unittest
from math import exp

import numpy as np

from SPINDLE.Motion import (AdaptiveIntegrator, ClassicalIntegrator,
                            IntegratorSettings, integratorFactory)
from SPINDLE.Motion.Integration import checkButcherTableau


# https://lpsa.swarthmore.edu/NumInt/NumIntSecond.html
def sampleDerivative(time, val):
    return -2 * val

# https://resources.saylor.org/wwwresources/archived/site/wp-content/uploads/2011/11/ME205-8.3-TEXT.pdf
def sampleDerivative2(time, val):
    return -2.2067e-12 * (val**4 - 81e8)

def harmonicOscillator(time, val):
    return np.array([ val[1], -val[0] ])

class TestIntegrator(unittest.TestCase):
    def setUp(self):
        self.looseAdaptiveSettings = dict(relativeTolerance=10.0, absoluteTolerance=10.0)

    def test_IntegrateEuler(self):
        integrate = ClassicalIntegrator(method="Euler")
        result = integrate(3, 0, sampleDerivative, 0.1)
        self.assertAlmostEqual(result.newValue, 2.4)
        self.assertEqual(result.dt, 0.1)
        self.assertEqual(result.timeStepAdaptationFactor, 1.0)

    def test_IntegrateRK2Midpoint(self):
        #Simple test case, original result from website was 2.0175!
        integrate = ClassicalIntegrator(method="RK2Midpoint")
        v1 = integrate(3, 0, sampleDerivative, 0.1).newValue
        v2 = integrate(v1, 0.1, sampleDerivative, 0.1).newValue
        self.assertAlmostEqual(v2, 2.0172)

        v1 = integrate(1200, 0, sampleDerivative2, 240).newValue
        v2 = integrate(v1, 240, sampleDerivative2, 240).newValue
        self.assertAlmostEqual(v2, 976.87, 2)

    def test_IntegratorRK2Heun(self):
        #More complicated test case, based on radiative cooling
        integrate = ClassicalIntegrator(method="RK2Heun")
        v1 = integrate(1200, 0, sampleDerivative2, 240).newValue
        v2 = integrate(v1, 240, sampleDerivative2, 240).newValue
        self.assertAlmostEqual(v2, 584.27, 2)

    def test_IntegrateRK4(self):
        integrate = ClassicalIntegrator(method="RK4")
        v1 = integrate(3, 0, sampleDerivative, 0.2).newValue
        self.assertAlmostEqual(v1, 2.0112)

    def test_IntegrateRK4_38(self):
        # Fourth order: exact when the solution is a polynomial of degree 4 or lower
        integrate = ClassicalIntegrator(method="RK4_3/8")
        v1 = integrate(3, 0, sampleDerivative, 0.2).newValue
        self.assertAlmostEqual(v1, 2.0112)

        quarticDerivative = lambda t, y: 4*t**3
        self.assertAlmostEqual(integrate(0.0, 0.0, quarticDerivative, 2.0).newValue, 16.0, 10)

    def test_IntegrateRK12Adaptive(self):
        integrate = AdaptiveIntegrator(method="RK12Adaptive", maxTimeStep=1000, **self.looseAdaptiveSettings)
        v1 = integrate(3, 0, sampleDerivative, 0.1).newValue
        v2 = integrate(v1, 0.1, sampleDerivative, 0.1).newValue
        self.assertAlmostEqual(v2, 2.0172)

        v1 = integrate(1200, 0, sampleDerivative2, 240).newValue
        v2 = integrate(v1, 240, sampleDerivative2, 240).newValue
        self.assertAlmostEqual(v2, 976.87, 2)

    def test_IntegrateRK23Adaptive_BogackiShampine(self):
        integrate = AdaptiveIntegrator(method="RK23Adaptive", **self.looseAdaptiveSettings)
        v1 = integrate(3, 0, sampleDerivative, 0.1).newValue
        v2 = integrate(v1, 0.1, sampleDerivative, 0.1).newValue
        self.assertAlmostEqual(v2, 2.01064533)

    def test_IntegrateRK45Adaptive_DormandPrince(self):
        integrate = AdaptiveIntegrator(method="RK45Adaptive", **self.looseAdaptiveSettings)
        v1 = integrate(3, 0, sampleDerivative, 0.1).newValue
        v2 = integrate(v1, 0.1, sampleDerivative, 0.1).newValue
        self.assertAlmostEqual(v2, 2.0109602376)

    def test_IntegrateRK78Adaptive_DormandPrince(self):
        integrate = AdaptiveIntegrator(method="RK78Adaptive", **self.looseAdaptiveSettings)
        v1 = integrate(3, 0, sampleDerivative, 0.1).newValue
        v2 = integrate(v1, 0.1, sampleDerivative, 0.1).newValue
        self.assertAlmostEqual(v2, 2.010960138)
        self.assertAlmostEqual(v2, 3*exp(-0.4), 9)

    def test_AdaptiveStepRejection(self):
        discardedSteps = []
        integrate = AdaptiveIntegrator(method="RK45Adaptive", relativeTolerance=1e-12, absoluteTolerance=1e-12, maxTimeStep=10, minTimeStep=1e-8,
            discardedTimeStepCallback=discardedSteps.append)

        result = integrate(np.array([ 1.0, 0.0 ]), 0.0, harmonicOscillator, 2.0)
        self.assertLess(result.dt, 2.0)
        self.assertGreater(len(discardedSteps), 0)
        self.assertIs(discardedSteps[0], integrate)
        self.assertLessEqual(result.errorMagEstimate, 1.0)

        # Accepted step is accurate to roughly the tolerance
        self.assertAlmostEqual(result.newValue[0], np.cos(result.dt), 10)
        self.assertAlmostEqual(result.newValue[1], -np.sin(result.dt), 10)

    def test_AdaptiveStepGrowth(self):
        integrate = AdaptiveIntegrator(method="RK45Adaptive", relativeTolerance=1e-6, absoluteTolerance=1e-6, maxMinSafetyFactors=[ 4.0, 0.1, 0.8 ], maxTimeStep=100)
        result = integrate(np.array([ 1.0, 0.0 ]), 0.0, harmonicOscillator, 1e-3)
        self.assertEqual(result.dt, 1e-3)
        self.assertEqual(result.timeStepAdaptationFactor, 4.0)

    def test_MaxTimeStepLimit(self):
        integrate = AdaptiveIntegrator(method="RK45Adaptive", maxTimeStep=0.5, **self.looseAdaptiveSettings)
        result = integrate(np.array([ 1.0, 0.0 ]), 0.0, harmonicOscillator, 2.0)
        self.assertEqual(result.dt, 0.5)
        self.assertLessEqual(result.dt * result.timeStepAdaptationFactor, 0.5)

    def test_ConstantController(self):
        integrate = AdaptiveIntegrator(method="RK45Adaptive", controller="Constant", relativeTolerance=1e-14, absoluteTolerance=1e-14)
        result = integrate(np.array([ 1.0, 0.0 ]), 0.0, harmonicOscillator, 1.0)
        self.assertEqual(result.dt, 1.0)
        self.assertEqual(result.timeStepAdaptationFactor, 1)
        self.assertGreater(result.errorMagEstimate, 1.0)

    def test_FirstSameAsLastCache(self):
        nEvaluations = [ 0 ]
        def countingDerivative(time, val):
            nEvaluations[0] += 1
            return harmonicOscillator(time, val)

        integrate = AdaptiveIntegrator(method="RK45Adaptive", **self.looseAdaptiveSettings)
        firstResult = integrate(np.array([ 1.0, 0.0 ]), 0.0, countingDerivative, 0.1)
        self.assertEqual(nEvaluations[0], 7)

        # Continuing from the end of the last step reuses its final derivative
        integrate(firstResult.newValue, 0.1, countingDerivative, 0.1)
        self.assertEqual(nEvaluations[0], 13)

        # Continuing from a modified value does not
        integrate(firstResult.newValue * 1.01, 0.1, countingDerivative, 0.1)
        self.assertEqual(nEvaluations[0], 20)

    def test_InvalidMethods(self):
        with self.assertRaises(ValueError):
            ClassicalIntegrator(method="RK5")
        with self.assertRaises(ValueError):
            AdaptiveIntegrator(method="RK56Adaptive")
        with self.assertRaises(ValueError):
            AdaptiveIntegrator(method="RK45Adaptive", controller="PID")

    def test_CheckButcherTableau(self):
        checkButcherTableau([ [ 0.5, 0.5 ], [ 0, 1 ] ])

        with self.assertRaises(ValueError):
            checkButcherTableau([ [ 0.5, 0.4 ], [ 0, 1 ] ])
        with self.assertRaises(ValueError):
            checkButcherTableau([ [ 0.5, 0.5 ], [ 0.5, 0.6 ] ])

    def test_IntegratorFactory(self):
        self.assertIsInstance(integratorFactory("RK4"), ClassicalIntegrator)

        settings = IntegratorSettings(method="RK78Adaptive", maxTimeStep=3.0, relativeTolerance=1e-9)
        integrator = integratorFactory("RK78Adaptive", integratorSettings=settings)
        self.assertIsInstance(integrator, AdaptiveIntegrator)
        self.assertEqual(integrator.maxTimeStep, 3.0)
        self.assertEqual(integrator.relativeTolerance, 1e-9)

        self.assertIsInstance(settings.createIntegrator(), AdaptiveIntegrator)

        with self.assertRaises(ValueError):
            integratorFactory("RK45Adaptive")

#If this file is run by itself, run the tests above
if __name__ == '__main__':
    unittest.main()
