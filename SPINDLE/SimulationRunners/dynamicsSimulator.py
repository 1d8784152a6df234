'''
Drives numerical propagation of the states defined by a set of `SPINDLE.SimulationRunners.PropagatorSettings`,
    and installs the resulting tabulated ephemerides into the propagated bodies.
'''
from collections import OrderedDict

import numpy as np
from tqdm import tqdm

from SPINDLE.Motion import IntegratorSettings
from SPINDLE.SimulationRunners.propagatorSettings import (
    MultiTypePropagatorSettings, PropagationTerminationSettings,
    RotationalPropagatorSettings, TranslationalPropagatorSettings)

__all__ = [ "DynamicsSimulator" ]

class DynamicsSimulator():

    def __init__(self, bodyMap, integratorSettings: IntegratorSettings, propagatorSettings, terminationSettings: PropagationTerminationSettings,
            dependentVariables=None, initialTime=0.0, silent=False, showProgress=True, interpolatorType="Lagrange", interpolationOrder=8, boundaryHandling="Throw"):
        '''
            Inputs:
                bodyMap:            (`SPINDLE.ENV.NamedBodyMap`) all bodies referenced by the propagator settings and models
                integratorSettings: (`SPINDLE.Motion.IntegratorSettings`)
                propagatorSettings: (`SPINDLE.SimulationRunners.PropagatorSettings`) single block, or `MultiTypePropagatorSettings` for several
                terminationSettings:(`SPINDLE.SimulationRunners.PropagationTerminationSettings`)
                dependentVariables: (list[`SPINDLE.SimulationRunners.DependentVariableSettings`])
                interpolatorType, interpolationOrder, boundaryHandling: used for the ephemerides installed after propagation
        '''
        self.bodyMap = bodyMap
        self.integratorSettings = integratorSettings
        self.propagatorSettings = propagatorSettings if isinstance(propagatorSettings, MultiTypePropagatorSettings) else MultiTypePropagatorSettings([ propagatorSettings ])
        self.terminationSettings = terminationSettings
        self.dependentVariables = [] if dependentVariables is None else list(dependentVariables)
        self.initialTime = float(initialTime)
        self.silent = silent
        self.showProgress = showProgress

        self.interpolatorType = interpolatorType
        self.interpolationOrder = interpolationOrder
        self.boundaryHandling = boundaryHandling

        self.stateHistory = OrderedDict()
        ''' { time: full propagated state } '''
        self.dependentVariableHistory = OrderedDict()
        ''' { time: concatenated dependent variable values } '''
        self.discardedTimeSteps = 0

        self._checkBodies()

    def _setPropagatedBodies(self):
        rotationalBlocks = self.propagatorSettings.getBlocksOfType(RotationalPropagatorSettings)
        translationalBlocks = self.propagatorSettings.getBlocksOfType(TranslationalPropagatorSettings)
        self.bodyMap.setPropagatedBodies(
            rotationalBodies=[ bodyName for _, block in rotationalBlocks for bodyName in block.bodies ],
            translationalBodies=[ bodyName for _, block in translationalBlocks for bodyName in block.bodies ]
        )

    def _checkBodies(self):
        for block in self.propagatorSettings.getBlocks():
            for bodyName in block.bodies:
                if bodyName not in self.bodyMap:
                    raise KeyError("Propagated body {} not found in body map. Available bodies: {}".format(bodyName, list(self.bodyMap.keys())))
            if isinstance(block, TranslationalPropagatorSettings):
                for centralBodyName in block.centralBodies:
                    if centralBodyName not in self.bodyMap:
                        raise KeyError("Central body {} not found in body map. Available bodies: {}".format(centralBodyName, list(self.bodyMap.keys())))

    def _getRotationalBlock(self, bodyName):
        for _, block in self.propagatorSettings.getBlocksOfType(RotationalPropagatorSettings):
            if bodyName in block.bodies:
                return block
        return None

    #### Derivative evaluation ####
    def _updateBodyMap(self, time, state):
        ''' Ephemeris-driven bodies first, so that relative (translational) states are added to current central body states '''
        self.bodyMap.updateEnvironment(time)
        self.propagatorSettings.setStatesOnBodies(state, self.bodyMap, time)

    def computeStateDerivative(self, time, state) -> np.ndarray:
        self._updateBodyMap(time, state)
        return self.propagatorSettings.computeStateDerivative(time, state, self.bodyMap)

    def _recordAcceptedState(self, time, state):
        ''' Leaves the body map, torques and accelerations evaluated at the accepted state, for termination checks and dependent variables '''
        self.stateHistory[time] = state
        self.computeStateDerivative(time, state)

        if len(self.dependentVariables) > 0:
            values = [ variable.evaluate(self.bodyMap, self._getRotationalBlock(variable.bodyName)) for variable in self.dependentVariables ]
            self.dependentVariableHistory[time] = np.concatenate(values)

    def getDependentVariableColumnNames(self):
        return [ name for variable in self.dependentVariables for name in variable.getColumnNames() ]

    def getStateColumnNames(self):
        columnNames = []
        for block in self.propagatorSettings.getBlocks():
            if isinstance(block, RotationalPropagatorSettings):
                names = [ "OrientationW", "OrientationX", "OrientationY", "OrientationZ", "AngularVelocityX(rad/s)", "AngularVelocityY(rad/s)", "AngularVelocityZ(rad/s)" ]
            else:
                names = [ "PositionX(m)", "PositionY(m)", "PositionZ(m)", "VelocityX(m/s)", "VelocityY(m/s)", "VelocityZ(m/s)" ]
            columnNames += [ "{}.{}".format(bodyName, name) for bodyName in block.bodies for name in names ]

        return columnNames

    #### Main loop ####
    def _countDiscardedTimeStep(self, integrator):
        self.discardedTimeSteps += 1

    def _getNextTimeStep(self, time, dt):
        ''' Returns the (possibly shortened) time step, and whether it lands exactly on the termination end time '''
        endTime = self.terminationSettings.endTime
        if endTime is not None and time < endTime and time + dt >= endTime:
            return endTime - time, True
        return dt, False

    def run(self):
        '''
            Propagates from self.initialTime until the termination settings say to stop.
            Returns self.stateHistory, self.dependentVariableHistory
        '''
        self._setPropagatedBodies()
        integrator = self.integratorSettings.createIntegrator(discardedTimeStepCallback=self._countDiscardedTimeStep)

        time = self.initialTime
        state = self.propagatorSettings.postProcessState(self.propagatorSettings.getInitialState())
        dt = self.integratorSettings.initialTimeStep

        self.stateHistory = OrderedDict()
        self.dependentVariableHistory = OrderedDict()
        self.discardedTimeSteps = 0

        self._recordAcceptedState(time, state)

        endTime = self.terminationSettings.endTime
        progressBar = None
        if self.showProgress and not self.silent and endTime is not None:
            progressBar = tqdm(total=endTime - time)

        try:
            while not self.terminationSettings.shouldStop(time, state):
                stepDt, isFinalStep = self._getNextTimeStep(time, dt)
                if stepDt <= 0:
                    raise ValueError("Non-positive time step ({}) at time {}".format(stepDt, time))

                integrationResult = integrator(state, time, self.computeStateDerivative, stepDt)

                state = self.propagatorSettings.postProcessState(integrationResult.newValue)
                if isFinalStep and integrationResult.dt == stepDt:
                    time = endTime
                else:
                    time = time + integrationResult.dt

                self._recordAcceptedState(time, state)

                if progressBar is not None:
                    progressBar.update(integrationResult.dt)

                # Keep the unshortened step size for the next iteration
                if isFinalStep:
                    dt = max(dt, integrationResult.dt * integrationResult.timeStepAdaptationFactor)
                else:
                    dt = integrationResult.dt * integrationResult.timeStepAdaptationFactor
        finally:
            if progressBar is not None:
                progressBar.close()

        if not self.silent:
            print("Propagation complete: {} time steps ({} discarded), final time: {}".format(len(self.stateHistory)-1, self.discardedTimeSteps, time))

        self.installEphemerides()
        # Propagated bodies now follow their new ephemerides
        self.bodyMap.setPropagatedBodies()

        return self.stateHistory, self.dependentVariableHistory

    def installEphemerides(self):
        ''' Replaces the ephemerides of all propagated bodies with tabulated ephemerides interpolating the state history '''
        if len(self.stateHistory) < 2:
            raise ValueError("At least two states required to tabulate ephemerides, propagation produced {}".format(len(self.stateHistory)))

        self.propagatorSettings.installEphemerides(self.stateHistory, self.bodyMap, self.interpolatorType, self.interpolationOrder, self.boundaryHandling)

    def getFinalState(self) -> np.ndarray:
        return next(reversed(self.stateHistory.values()))
