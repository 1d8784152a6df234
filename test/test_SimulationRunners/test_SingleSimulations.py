import os
import sys
import tempfile
import unittest
from unittest.mock import patch

import numpy as np

from SPINDLE.ENV import ConstantEphemeris, ConstantRotationalEphemeris
from SPINDLE.IO import Logger, readHistoryFromFile
from SPINDLE.Models import AerodynamicAngleCalculator, AerodynamicCoefficients
from SPINDLE.Motion import Quaternion, interpolatorFactory
from SPINDLE.SimulationRunners import (RotationalPropagatorSettings,
                                       Simulation,
                                       TranslationalPropagatorSettings,
                                       loadSimDefinition, runSimulation)
from test.testUtilities import (assertIterablesAlmostEqual, captureOutput,
                                assertMaxAbsDifferenceBelow,
                                loadExampleSimDefinition,
                                setUpSimDefForMinimalRunCheck)


class TestSimulationSetup(unittest.TestCase):
    def setUp(self):
        self.simDef = loadExampleSimDefinition("CapsuleEntry")
        setUpSimDefForMinimalRunCheck(self.simDef)

    def test_CreateBodyMap(self):
        bodyMap = Simulation(simDefinition=self.simDef, silent=True).createBodyMap()
        capsule = bodyMap["Capsule"]
        self.assertIsInstance(capsule.aerodynamicCoefficients, AerodynamicCoefficients)
        assertIterablesAlmostEqual(self, capsule.aerodynamicCoefficients.forceCoefficients, [ 1.5, 0, 0.3 ])

    def test_InitialStateFromAngles(self):
        sim = Simulation(simDefinition=self.simDef, silent=True)
        bodyMap = sim.createBodyMap()
        propagatorSettings = sim.createPropagatorSettings(bodyMap)

        translational, rotational = propagatorSettings.getBlocks()
        self.assertIsInstance(translational, TranslationalPropagatorSettings)
        self.assertIsInstance(rotational, RotationalPropagatorSettings)

        propagatorSettings.setStatesOnBodies(propagatorSettings.getInitialState(), bodyMap)
        calculator = AerodynamicAngleCalculator("Capsule", "Earth")
        calculator.update(bodyMap)

        self.assertAlmostEqual(bodyMap.getAltitude("Capsule", "Earth"), 120e3, 4)
        self.assertAlmostEqual(calculator.getLatitude(), 0.25, 10)
        self.assertAlmostEqual(calculator.getLongitude(), 1.2, 10)
        self.assertAlmostEqual(calculator.getFlightPathAngle(), -1.2*np.pi/180, 10)
        self.assertAlmostEqual(calculator.getHeadingAngle(), np.pi/3, 10)
        self.assertAlmostEqual(calculator.getAngleOfAttack(), 0.3, 10)
        self.assertAlmostEqual(calculator.getAirspeed(), 7500, 6)

        self.assertEqual(list(rotational.torqueModels["Capsule"].torqueModels.keys()), [ "Aero" ])
        self.assertEqual(list(translational.accelerationModels["Capsule"].accelerationModels.keys()), [ "Gravity", "Aero" ])

    def test_NonPropagatedStatesUseConstantEphemerides(self):
        self.simDef.setValue("Bodies.Capsule.propagateRotation", "false")
        sim = Simulation(simDefinition=self.simDef, silent=True)
        bodyMap = sim.createBodyMap()
        propagatorSettings = sim.createPropagatorSettings(bodyMap)

        self.assertEqual(len(propagatorSettings.getBlocks()), 1)
        self.assertIsInstance(bodyMap["Capsule"].getRotationalEphemeris(), ConstantRotationalEphemeris)

        self.simDef.setValue("Bodies.Capsule.propagateTranslation", "false")
        with self.assertRaises(ValueError):
            sim.createPropagatorSettings(sim.createBodyMap())

    def test_SetupErrors(self):
        self.simDef.setValue("SimControl.EndCondition", "Mach")
        with self.assertRaises(ValueError):
            Simulation(simDefinition=self.simDef, silent=True).createDynamicsSimulator()

        self.simDef.setValue("SimControl.EndCondition", "Time")
        self.simDef.setValue("SimControl.dependentVariables", "Capsule")
        with self.assertRaises(ValueError):
            Simulation(simDefinition=self.simDef, silent=True).createDynamicsSimulator()

        with self.assertRaises(ValueError):
            loadSimDefinition()

class TestSimulationRuns(unittest.TestCase):
    def test_CapsuleEntryMinimalRun(self):
        simDef = loadExampleSimDefinition("CapsuleEntry")
        setUpSimDefForMinimalRunCheck(simDef)

        with captureOutput():
            stateHistory, dependentVariableHistory, logFilePaths = Simulation(simDefinition=simDef, silent=True).run()

        self.assertIsNone(logFilePaths)
        self.assertEqual(list(stateHistory.keys())[-1], 0.04)
        self.assertEqual(len(next(iter(stateHistory.values()))), 13)
        # Angles (7), altitude (1), total and aerodynamic torques (3 + 3)
        self.assertEqual(len(next(iter(dependentVariableHistory.values()))), 14)

        # Only aerodynamic torque acts on the capsule
        for values in dependentVariableHistory.values():
            assertIterablesAlmostEqual(self, values[8:11], values[11:14])

    def test_AltitudeTermination(self):
        simDef = loadExampleSimDefinition("CapsuleEntry")
        setUpSimDefForMinimalRunCheck(simDef)
        simDef.setValue("SimControl.EndCondition", "Altitude")
        simDef.setValue("SimControl.EndConditionValue", "119.5e3")
        simDef.setValue("SimControl.timeStep", "0.25")

        with captureOutput():
            _, dependentVariableHistory, _ = runSimulation(simDefinition=simDef, silent=True, showProgress=False)

        altitudes = [ values[7] for values in dependentVariableHistory.values() ]
        self.assertLessEqual(altitudes[-1], 119.5e3)
        self.assertTrue(all(altitude > 119.5e3 for altitude in altitudes[:-1]))

    def test_TorqueFreeSpin(self):
        simDef = loadExampleSimDefinition("TorqueFreeSpin")
        simDef.setValue("SimControl.EndConditionValue", "600")
        simDef.setValue("SimControl.loggingLevel", "0")

        with captureOutput():
            sim = Simulation(simDefinition=simDef, silent=True, showProgress=False)
            stateHistory, dependentVariableHistory, _ = sim.run()

        self.assertEqual(len(sim.dynamicsSimulator.getFinalState()), 7)
        for values in dependentVariableHistory.values():
            assertIterablesAlmostEqual(self, values, [ 0, 0, 0 ])

        # Position is fixed
        satellite = sim.bodyMap["Satellite"]
        self.assertIsInstance(satellite.getEphemeris(), ConstantEphemeris)
        assertIterablesAlmostEqual(self, satellite.getEphemeris().getCartesianState(300.0), [ 7e6, 0, 0, 0, 7546, 0 ])

        # Rotational kinetic energy is conserved
        inertia = satellite.inertia
        energies = [ inertia.getRotationalKineticEnergy(state[4:]) for state in stateHistory.values() ]
        self.assertAlmostEqual(max(energies) / min(energies), 1.0, 7)

    def test_LoggerRemovedWhenPostProcessingFails(self):
        simDef = loadExampleSimDefinition("CapsuleEntry")
        setUpSimDefForMinimalRunCheck(simDef)

        with captureOutput():
            with patch.object(Simulation, "_postProcess", side_effect=RuntimeError("Unable to write results")):
                with self.assertRaises(RuntimeError):
                    Simulation(simDefinition=simDef, silent=True).run()

            self.assertNotIsInstance(sys.stdout, Logger)

    def test_LoggedRun(self):
        simDef = loadExampleSimDefinition("CapsuleEntry")
        setUpSimDefForMinimalRunCheck(simDef)
        simDef.setValue("SimControl.loggingLevel", "1")

        with tempfile.TemporaryDirectory() as directory:
            simDef.writeToFile(os.path.join(directory, "Entry.spindle"))

            with captureOutput():
                stateHistory, _, logFilePaths = Simulation(simDefinition=simDef, silent=True).run()

            resultsFolder = os.path.join(directory, "Entry_Run1")
            self.assertEqual(logFilePaths, [ os.path.join(resultsFolder, fileName) for fileName in
                [ "stateHistory.txt", "dependentVariableHistory.txt", "consoleOutput.txt" ] ])
            for path in logFilePaths:
                self.assertTrue(os.path.isfile(path))

            stateData = readHistoryFromFile(logFilePaths[0])
            self.assertEqual(len(stateData), len(stateHistory))
            self.assertEqual(stateData.columns[0], "Time(s)")
            self.assertEqual(stateData.columns[1], "Capsule.PositionX(m)")
            self.assertEqual(stateData.columns[-1], "Capsule.AngularVelocityZ(rad/s)")

            with open(logFilePaths[-1], "r") as consoleOutput:
                self.assertIn("Simulation Complete", consoleOutput.read())

class TestCoupledEntry(unittest.TestCase):
    def setUp(self):
        self.simDef = loadExampleSimDefinition("CapsuleEntry")
        self.simDef.setValue("SimControl.EndConditionValue", "250")
        self.simDef.setValue("SimControl.timeDiscretization", "RK78Adaptive")
        self.simDef.setValue("SimControl.TimeStepAdaptation.relativeTolerance", "1e-12")
        self.simDef.setValue("SimControl.TimeStepAdaptation.absoluteTolerance", "1e-12")
        self.simDef.setValue("SimControl.loggingLevel", "0")
        self.simDef.setValue("SimControl.dependentVariables", "Capsule.rotationMatrixToBody Capsule.totalTorque")

    def _run(self):
        with captureOutput():
            sim = Simulation(simDefinition=self.simDef, silent=True, showProgress=False)
            stateHistory, dependentVariableHistory, _ = sim.run()
        return sim, stateHistory, dependentVariableHistory

    def test_AngleChainMatchesTorqueFreeSpin(self):
        self.simDef.removeKey("Bodies.Capsule.Torques.Aero.class")
        self.simDef.setValue("Bodies.Capsule.InitialState.angularVelocity", "(0 0 0.02)")
        _, stateHistory, dependentVariableHistory = self._run()

        times = list(stateHistory.keys())
        self.assertEqual(times[-1], 250.0)
        initialOrientation = Quaternion(components=stateHistory[times[0]][6:10])

        for time in times:
            # Spin about the body z-axis at a constant rate
            spin = Quaternion(axisOfRotation=[ 0, 0, 1 ], angle=0.02*(time - times[0]))
            expectedRotationToBody = (initialOrientation * spin).toRotationMatrix().T

            values = dependentVariableHistory[time]
            assertMaxAbsDifferenceBelow(self, values[:9], expectedRotationToBody.flatten(), 1e-13)
            assertIterablesAlmostEqual(self, values[9:], [ 0, 0, 0 ])
            assertMaxAbsDifferenceBelow(self, stateHistory[time][10:], [ 0, 0, 0.02 ], 1e-16)

    def test_AngularMomentumRateMatchesTorque(self):
        sim, stateHistory, dependentVariableHistory = self._run()
        inertia = sim.bodyMap["Capsule"].inertia

        times = np.array(list(stateHistory.keys()))
        inertialAngularMomenta = []
        inertialTorques = []
        for time in times:
            state = stateHistory[time]
            orientation = Quaternion(components=state[6:10])
            inertialAngularMomenta.append(orientation.rotate(inertia.getAngularMomentum(state[10:])))
            inertialTorques.append(orientation.rotate(dependentVariableHistory[time][9:]))

        angularMomentumInterpolator = interpolatorFactory("Lagrange", times, inertialAngularMomenta, order=6)

        # Stay away from the ends of the table, where the stencil is one-sided
        for i in range(3, len(times) - 3):
            assertMaxAbsDifferenceBelow(self, angularMomentumInterpolator.derivative(times[i]), inertialTorques[i], 1e-2)

        # The torque is not trivially zero
        self.assertGreater(max(np.linalg.norm(torque) for torque in inertialTorques), 0.1)

#If this file is run by itself, run the tests above
if __name__ == '__main__':
    unittest.main()
