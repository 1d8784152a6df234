'''
Propagator settings define the blocks of the propagated state vector, how each block's derivative is computed, and when propagation stops.

Each block owns a contiguous slice of the full state vector:
    Rotational block:       7 entries per body [ qw, qx, qy, qz, wx, wy, wz ] (quaternion rotates body-fixed -> inertial, angular velocity in the body frame)
    Translational block:    6 entries per body [ x, y, z, vx, vy, vz ], relative to the body's central body, inertial orientation

`MultiTypePropagatorSettings` concatenates blocks. Before any block's derivative is computed, the states of all blocks are set on the bodies,
    so each block's models see the current values of every other block's states.
'''
from abc import ABC, abstractmethod

import numpy as np

from SPINDLE.ENV.Ephemerides import (TabulatedCartesianEphemeris,
                                     TabulatedRotationalEphemeris)
from SPINDLE.Models import (AccelerationModelAggregator,
                            AerodynamicAngleCalculator, TorqueModelAggregator)
from SPINDLE.Motion import (ROTATIONAL_STATE_SIZE, TRANSLATIONAL_STATE_SIZE,
                            BoundaryHandling,
                            computeRotationalStateDerivative,
                            computeTranslationalStateDerivative,
                            normalizeQuaternionInState)

__all__ = [ "PropagatorSettings", "RotationalPropagatorSettings", "TranslationalPropagatorSettings", "MultiTypePropagatorSettings",
    "PropagationTerminationSettings", "TimeTerminationSettings", "CustomTerminationSettings", "DependentVariableSettings" ]

#### Propagated state blocks ####
class PropagatorSettings(ABC):
    stateSizePerBody = 0

    def __init__(self, bodies, initialStates):
        '''
            bodies:         list of names of the propagated bodies
            initialStates:  concatenated initial states of all bodies, or a list with one state per body
        '''
        self.bodies = list(bodies)
        self.initialState = np.array(np.concatenate([ np.atleast_1d(s) for s in initialStates ]) if _isListOfStates(initialStates) else initialStates, dtype=np.float64)

        if len(set(self.bodies)) != len(self.bodies):
            raise ValueError("Bodies may only be propagated once per block, got: {}".format(self.bodies))
        if self.initialState.shape != (self.stateSize,):
            raise ValueError("{} requires {} initial state entries ({} per body for {} bodies), got: {}".format(
                type(self).__name__, self.stateSize, self.stateSizePerBody, len(self.bodies), self.initialState.shape))

    @property
    def stateSize(self) -> int:
        return self.stateSizePerBody * len(self.bodies)

    def getBlocks(self):
        return [ self ]

    def getInitialState(self) -> np.ndarray:
        return self.initialState.copy()

    def splitState(self, blockState):
        ''' Returns a list of the states of each body, in the same order as self.bodies '''
        n = self.stateSizePerBody
        return [ blockState[i*n:(i+1)*n] for i in range(len(self.bodies)) ]

    def getBodyState(self, blockState, bodyName) -> np.ndarray:
        i = self.bodies.index(bodyName)
        n = self.stateSizePerBody
        return blockState[i*n:(i+1)*n]

    def postProcessState(self, blockState) -> np.ndarray:
        ''' Called on each accepted state '''
        return blockState

    @abstractmethod
    def setStatesOnBodies(self, blockState, bodyMap, time=None):
        ''' Sets the current states of the propagated bodies. Called for all blocks before any derivative is computed '''

    @abstractmethod
    def computeStateDerivative(self, time, blockState, bodyMap) -> np.ndarray:
        ''' Assumes the current states of all bodies in bodyMap have already been set '''

    @abstractmethod
    def installEphemerides(self, blockStateHistory, bodyMap, interpolatorType="Lagrange", order=8, boundaryHandling="Throw"):
        ''' Replaces the ephemerides of the propagated bodies with ones interpolating blockStateHistory (dict of { time: blockState }) '''

def _isListOfStates(initialStates) -> bool:
    return isinstance(initialStates, (list, tuple)) and len(initialStates) > 0 and np.ndim(initialStates[0]) == 1

class RotationalPropagatorSettings(PropagatorSettings):
    stateSizePerBody = ROTATIONAL_STATE_SIZE

    def __init__(self, bodies, initialStates, torqueModels=None):
        '''
            torqueModels: dict of { bodyName: `SPINDLE.Models.TorqueModelAggregator` or dict of { modelName: `SPINDLE.Models.TorqueModel` } }
                Bodies absent from torqueModels are torque-free
        '''
        super().__init__(bodies, initialStates)

        torqueModels = {} if torqueModels is None else torqueModels
        unknownBodies = set(torqueModels.keys()) - set(self.bodies)
        if len(unknownBodies) > 0:
            raise ValueError("Torque models provided for bodies which are not propagated: {}".format(sorted(unknownBodies)))

        self.torqueModels = {}
        for bodyName in self.bodies:
            models = torqueModels.get(bodyName, {})
            self.torqueModels[bodyName] = models if isinstance(models, TorqueModelAggregator) else TorqueModelAggregator(models)

        self.lastTorques = { bodyName: np.zeros(3) for bodyName in self.bodies }

    def setStatesOnBodies(self, blockState, bodyMap, time=None):
        for bodyName, bodyState in zip(self.bodies, self.splitState(blockState)):
            bodyMap[bodyName].setCurrentRotationalState(bodyState, time)

    def computeStateDerivative(self, time, blockState, bodyMap):
        derivative = np.empty(self.stateSize)
        n = self.stateSizePerBody

        for i, (bodyName, bodyState) in enumerate(zip(self.bodies, self.splitState(blockState))):
            torque = self.torqueModels[bodyName].getTotalTorque(time, bodyMap)
            self.lastTorques[bodyName] = torque
            derivative[i*n:(i+1)*n] = computeRotationalStateDerivative(bodyState, bodyMap[bodyName].getInertiaTensor(), torque)

        return derivative

    def postProcessState(self, blockState):
        return np.concatenate([ normalizeQuaternionInState(bodyState) for bodyState in self.splitState(blockState) ])

    def installEphemerides(self, blockStateHistory, bodyMap, interpolatorType="Lagrange", order=8, boundaryHandling="Throw"):
        for bodyName in self.bodies:
            bodyHistory = { t: self.getBodyState(state, bodyName) for t, state in blockStateHistory.items() }
            ephemeris = TabulatedRotationalEphemeris.fromStateHistory(bodyHistory, interpolatorType, order, _toBoundaryHandling(boundaryHandling), targetFrameOrientation=bodyName + "_Fixed")
            bodyMap[bodyName].setRotationalEphemeris(ephemeris)

class TranslationalPropagatorSettings(PropagatorSettings):
    stateSizePerBody = TRANSLATIONAL_STATE_SIZE

    def __init__(self, centralBodies, bodies, initialStates, accelerationModels=None):
        '''
            centralBodies:      list of central body names, one per propagated body. Propagated states are relative to these bodies
            accelerationModels: dict of { bodyName: `SPINDLE.Models.AccelerationModelAggregator` or dict of { modelName: `SPINDLE.Models.AccelerationModel` } }
        '''
        super().__init__(bodies, initialStates)

        self.centralBodies = list(centralBodies)
        if len(self.centralBodies) != len(self.bodies):
            raise ValueError("One central body required per propagated body. Got {} central bodies for {} bodies".format(len(self.centralBodies), len(self.bodies)))
        propagatedCentralBodies = set(self.centralBodies).intersection(self.bodies)
        if len(propagatedCentralBodies) > 0:
            raise ValueError("Central bodies must not be propagated in the same block: {}".format(sorted(propagatedCentralBodies)))

        accelerationModels = {} if accelerationModels is None else accelerationModels
        self.accelerationModels = {}
        for bodyName in self.bodies:
            models = accelerationModels.get(bodyName, {})
            self.accelerationModels[bodyName] = models if isinstance(models, AccelerationModelAggregator) else AccelerationModelAggregator(models)

    def setStatesOnBodies(self, blockState, bodyMap, time=None):
        for bodyName, centralBodyName, relativeState in zip(self.bodies, self.centralBodies, self.splitState(blockState)):
            globalState = relativeState + bodyMap[centralBodyName].currentTranslationalState
            bodyMap[bodyName].setCurrentTranslationalState(globalState, time)

    def computeStateDerivative(self, time, blockState, bodyMap):
        derivative = np.empty(self.stateSize)
        n = self.stateSizePerBody

        for i, (bodyName, bodyState) in enumerate(zip(self.bodies, self.splitState(blockState))):
            acceleration = self.accelerationModels[bodyName].getTotalAcceleration(time, bodyMap)
            derivative[i*n:(i+1)*n] = computeTranslationalStateDerivative(bodyState, acceleration)

        return derivative

    def installEphemerides(self, blockStateHistory, bodyMap, interpolatorType="Lagrange", order=8, boundaryHandling="Throw"):
        ''' Tabulated states are global (central body state added back in), consistent with all other translational ephemerides '''
        for bodyName, centralBodyName in zip(self.bodies, self.centralBodies):
            centralBodyEphemeris = bodyMap[centralBodyName].getEphemeris()
            bodyHistory = {}
            for t, state in blockStateHistory.items():
                centralBodyState = np.zeros(6) if centralBodyEphemeris is None else centralBodyEphemeris.getCartesianState(t)
                bodyHistory[t] = self.getBodyState(state, bodyName) + centralBodyState

            ephemeris = TabulatedCartesianEphemeris.fromStateHistory(bodyHistory, interpolatorType, order, _toBoundaryHandling(boundaryHandling))
            bodyMap[bodyName].setEphemeris(ephemeris)

class MultiTypePropagatorSettings(PropagatorSettings):
    ''' Concatenates the state vectors of several blocks, in the order given '''

    def __init__(self, propagatorSettingsList):
        self.blocks = []
        for settings in propagatorSettingsList:
            self.blocks += settings.getBlocks()

        if len(self.blocks) == 0:
            raise ValueError("At least one propagator settings block is required")

        self.offsets = list(np.cumsum([ 0 ] + [ block.stateSize for block in self.blocks ]))
        self.bodies = [ bodyName for block in self.blocks for bodyName in block.bodies ]
        self.initialState = np.concatenate([ block.getInitialState() for block in self.blocks ])

    @property
    def stateSize(self):
        return int(self.offsets[-1])

    def getBlocks(self):
        return list(self.blocks)

    def getBlockState(self, state, blockIndex) -> np.ndarray:
        return state[self.offsets[blockIndex]:self.offsets[blockIndex+1]]

    def getBlocksOfType(self, settingsType):
        ''' Returns a list of (blockIndex, block) for all blocks of the given type '''
        return [ (i, block) for i, block in enumerate(self.blocks) if isinstance(block, settingsType) ]

    def setStatesOnBodies(self, state, bodyMap, time=None):
        for i, block in enumerate(self.blocks):
            block.setStatesOnBodies(self.getBlockState(state, i), bodyMap, time)

    def computeStateDerivative(self, time, state, bodyMap):
        return np.concatenate([ block.computeStateDerivative(time, self.getBlockState(state, i), bodyMap) for i, block in enumerate(self.blocks) ])

    def postProcessState(self, state):
        return np.concatenate([ block.postProcessState(self.getBlockState(state, i)) for i, block in enumerate(self.blocks) ])

    def installEphemerides(self, stateHistory, bodyMap, interpolatorType="Lagrange", order=8, boundaryHandling="Throw"):
        for i, block in enumerate(self.blocks):
            blockHistory = { t: self.getBlockState(state, i) for t, state in stateHistory.items() }
            block.installEphemerides(blockHistory, bodyMap, interpolatorType, order, boundaryHandling)

def _toBoundaryHandling(boundaryHandling):
    if isinstance(boundaryHandling, str):
        try:
            return BoundaryHandling[boundaryHandling.upper()]
        except KeyError:
            raise ValueError("Boundary handling: {} not found. Try 'Throw', 'Extrapolate' or 'Clamp'".format(boundaryHandling))
    return boundaryHandling

#### Termination ####
class PropagationTerminationSettings(ABC):
    endTime = None
    ''' If not None, the simulator shortens its last time step to end exactly at this time '''

    @abstractmethod
    def shouldStop(self, time, state) -> bool:
        return

class TimeTerminationSettings(PropagationTerminationSettings):
    def __init__(self, endTime):
        self.endTime = float(endTime)

    def shouldStop(self, time, state):
        return time >= self.endTime

class CustomTerminationSettings(PropagationTerminationSettings):
    ''' Wraps any function shouldStop(time, state) -> bool. Optionally also stops at endTime '''

    def __init__(self, shouldStop, endTime=None):
        self.shouldStopFunction = shouldStop
        self.endTime = None if endTime is None else float(endTime)

    def shouldStop(self, time, state):
        if self.endTime is not None and time >= self.endTime:
            return True
        return bool(self.shouldStopFunction(time, state))

#### Dependent variables ####
class DependentVariableSettings():
    '''
        Quantities computed from the body map after each accepted time step, and saved alongside the propagated states:
            aerodynamicAngles:      [ latitude, longitude, heading, flight path angle, angle of attack, sideslip, bank ] of bodyName w.r.t. centralBodyName
            totalTorque:            Sum of the torques on bodyName (body frame)
            singleTorque:           Torque from the model named modelName on bodyName (body frame)
            rotationMatrixToBody:   Inertial -> body frame rotation matrix, composed from the aerodynamic angle chain (row-major, 9 entries)
            altitude:               Altitude of bodyName above centralBodyName's reference sphere
    '''
    variableSizes = {
        "aerodynamicAngles": 7,
        "totalTorque": 3,
        "singleTorque": 3,
        "rotationMatrixToBody": 9,
        "altitude": 1
    }
    needsCentralBody = { "aerodynamicAngles", "rotationMatrixToBody", "altitude" }

    def __init__(self, variableType, bodyName, centralBodyName=None, modelName=None):
        if variableType not in self.variableSizes:
            raise ValueError("Dependent variable: {} not implemented. Try one of: {}".format(variableType, list(self.variableSizes.keys())))
        if variableType in self.needsCentralBody and centralBodyName is None:
            raise ValueError("Dependent variable: {} requires a central body".format(variableType))
        if variableType == "singleTorque" and modelName is None:
            raise ValueError("Dependent variable: singleTorque requires the name of a torque model")

        self.variableType = variableType
        self.bodyName = bodyName
        self.centralBodyName = centralBodyName
        self.modelName = modelName

        self.angleCalculator = None
        if variableType in ("aerodynamicAngles", "rotationMatrixToBody"):
            self.angleCalculator = AerodynamicAngleCalculator(bodyName, centralBodyName)

    @property
    def size(self) -> int:
        return self.variableSizes[self.variableType]

    def getColumnNames(self):
        if self.variableType == "aerodynamicAngles":
            names = [ "Latitude(rad)", "Longitude(rad)", "HeadingAngle(rad)", "FlightPathAngle(rad)", "AngleOfAttack(rad)", "SideslipAngle(rad)", "BankAngle(rad)" ]
        elif self.variableType == "totalTorque":
            names = [ "TotalTorque{}(Nm)".format(axis) for axis in "XYZ" ]
        elif self.variableType == "singleTorque":
            names = [ "{}Torque{}(Nm)".format(self.modelName, axis) for axis in "XYZ" ]
        elif self.variableType == "rotationMatrixToBody":
            names = [ "R_InertialToBody{}{}".format(i, j) for i in range(3) for j in range(3) ]
        else:
            names = [ "Altitude(m)" ]

        return [ "{}.{}".format(self.bodyName, name) for name in names ]

    def evaluate(self, bodyMap, rotationalPropagatorSettings=None) -> np.ndarray:
        '''
            Assumes the body map's current states are up to date.
            Torque variables read the last torques computed by rotationalPropagatorSettings (a `RotationalPropagatorSettings` propagating self.bodyName)
        '''
        if self.variableType == "aerodynamicAngles":
            self.angleCalculator.update(bodyMap)
            return self.angleCalculator.getAllAngles()

        elif self.variableType == "rotationMatrixToBody":
            self.angleCalculator.update(bodyMap)
            return self.angleCalculator.getRotationMatrixBetweenFrames("Inertial", "Body").flatten()

        elif self.variableType == "altitude":
            return np.array([ bodyMap.getAltitude(self.bodyName, self.centralBodyName) ])

        if rotationalPropagatorSettings is None:
            raise ValueError("Dependent variable: {} requires {} to be propagated rotationally".format(self.variableType, self.bodyName))

        if self.variableType == "totalTorque":
            return np.array(rotationalPropagatorSettings.lastTorques[self.bodyName], dtype=np.float64)
        else:
            return np.array(rotationalPropagatorSettings.torqueModels[self.bodyName].getLastTorque(self.modelName), dtype=np.float64)
