'''
Rotational and translational ephemerides: answer orientation/state queries for a body by time.

Rotational ephemerides describe the rotation between a base frame (inertial) and a target frame (body-fixed).
All variants share the query interface of `RotationalEphemeris`:

* getRotationToBaseFrame(t) / getRotationToTargetFrame(t)                                   - 3x3 matrices, transposes of each other
* getRotationToBaseFrameQuaternion(t) / getRotationToTargetFrameQuaternion(t)               - `SPINDLE.Motion.Quaternion`, conjugates of each other
* getDerivativeOfRotationToBaseFrame(t) / getDerivativeOfRotationToTargetFrame(t)           - time derivatives of the matrices above
* getRotationalVelocityVectorInTargetFrame(t) / getRotationalVelocityVectorInBaseFrame(t)    - angular velocity of the target frame w.r.t. the base frame

Kinematic relations used throughout (w~ = cross product matrix of w_target):
    d(R_toBase)/dt = R_toBase @ w~
    d(R_toTarget)/dt = -w~ @ R_toTarget
    w_base = R_toBase @ w_target

Queries are read-only: no ephemeris stores a cursor or cache that changes as it is queried.
'''
from abc import ABC, abstractmethod

import numpy as np

from SPINDLE.Motion import (BoundaryHandling, OneDimensionalInterpolator,
                            Quaternion, crossProductMatrix,
                            getZAxisRotation, interpolatorFactory)

__all__ = [ "RotationalEphemeris", "ConstantRotationalEphemeris", "SimpleRotationalEphemeris", "TabulatedRotationalEphemeris",
    "Ephemeris", "ConstantEphemeris", "TabulatedCartesianEphemeris", "rotationalEphemerisFactory" ]

class RotationalEphemeris(ABC):
    ''' Interface for all rotational ephemerides. Subclasses must provide the orientation quaternion and the body-frame angular velocity '''

    def __init__(self, baseFrameOrientation="Inertial", targetFrameOrientation="BodyFixed"):
        self.baseFrameOrientation = baseFrameOrientation
        self.targetFrameOrientation = targetFrameOrientation

    @abstractmethod
    def getRotationToBaseFrameQuaternion(self, time) -> Quaternion:
        ''' Unit quaternion rotating vectors from the target frame to the base frame '''
        return

    @abstractmethod
    def getRotationalVelocityVectorInTargetFrame(self, time) -> np.ndarray:
        return

    def getRotationToTargetFrameQuaternion(self, time) -> Quaternion:
        return self.getRotationToBaseFrameQuaternion(time).conjugate()

    def getRotationToBaseFrame(self, time) -> np.ndarray:
        return self.getRotationToBaseFrameQuaternion(time).toRotationMatrix()

    def getRotationToTargetFrame(self, time) -> np.ndarray:
        return self.getRotationToBaseFrame(time).T

    def getRotationalVelocityVectorInBaseFrame(self, time) -> np.ndarray:
        return self.getRotationToBaseFrame(time) @ self.getRotationalVelocityVectorInTargetFrame(time)

    def getDerivativeOfRotationToBaseFrame(self, time) -> np.ndarray:
        return self.getRotationToBaseFrame(time) @ crossProductMatrix(self.getRotationalVelocityVectorInTargetFrame(time))

    def getDerivativeOfRotationToTargetFrame(self, time) -> np.ndarray:
        return -crossProductMatrix(self.getRotationalVelocityVectorInTargetFrame(time)) @ self.getRotationToTargetFrame(time)

    def getFullRotationalQuantitiesToTargetFrame(self, time):
        ''' Returns (rotationToTargetFrame, derivativeOfRotationToTargetFrame, angularVelocityInBaseFrame), evaluated together '''
        rotationToBaseFrame = self.getRotationToBaseFrame(time)
        angularVelocityInTargetFrame = self.getRotationalVelocityVectorInTargetFrame(time)

        rotationToTargetFrame = rotationToBaseFrame.T
        derivativeOfRotationToTargetFrame = -crossProductMatrix(angularVelocityInTargetFrame) @ rotationToTargetFrame
        return rotationToTargetFrame, derivativeOfRotationToTargetFrame, rotationToBaseFrame @ angularVelocityInTargetFrame

class ConstantRotationalEphemeris(RotationalEphemeris):
    ''' Fixed orientation, no rotation '''

    def __init__(self, rotationToBaseFrame=None, baseFrameOrientation="Inertial", targetFrameOrientation="BodyFixed"):
        '''
            rotationToBaseFrame: `SPINDLE.Motion.Quaternion` or [ w, x, y, z ]. Identity if not provided
        '''
        super().__init__(baseFrameOrientation, targetFrameOrientation)
        if rotationToBaseFrame is None:
            rotationToBaseFrame = Quaternion(1, 0, 0, 0)
        elif not isinstance(rotationToBaseFrame, Quaternion):
            rotationToBaseFrame = Quaternion(components=rotationToBaseFrame)
        self.rotationToBaseFrame = rotationToBaseFrame.normalize()

    def getRotationToBaseFrameQuaternion(self, time):
        return self.rotationToBaseFrame

    def getRotationalVelocityVectorInTargetFrame(self, time):
        return np.zeros(3)

    def getDerivativeOfRotationToBaseFrame(self, time):
        return np.zeros((3,3))

    def getDerivativeOfRotationToTargetFrame(self, time):
        return np.zeros((3,3))

class SimpleRotationalEphemeris(RotationalEphemeris):
    '''
        Uniform rotation about the target frame's Z axis, starting from a known orientation at a known time.
        Closed form, valid at any time:
            R_toTarget(t) = C_z(rotationRate*(t - initialTime)) @ R_toTarget(initialTime)
    '''
    def __init__(self, initialRotationToTargetFrame, rotationRate, initialTime=0.0, baseFrameOrientation="Inertial", targetFrameOrientation="BodyFixed"):
        '''
            initialRotationToTargetFrame:   `SPINDLE.Motion.Quaternion` or 3x3 matrix, rotation from base to target frame at initialTime
            rotationRate:                   rad/s, about the target frame's Z axis
        '''
        super().__init__(baseFrameOrientation, targetFrameOrientation)
        if isinstance(initialRotationToTargetFrame, Quaternion):
            initialRotationToTargetFrame = initialRotationToTargetFrame.normalize().toRotationMatrix()
        self.initialRotationToTargetFrame = np.asarray(initialRotationToTargetFrame, dtype=np.float64)
        self.rotationRate = rotationRate
        self.initialTime = initialTime

    def getRotationToTargetFrame(self, time):
        return getZAxisRotation(self.rotationRate*(time - self.initialTime)) @ self.initialRotationToTargetFrame

    def getRotationToBaseFrame(self, time):
        return self.getRotationToTargetFrame(time).T

    def getRotationToBaseFrameQuaternion(self, time):
        return Quaternion.fromRotationMatrix(self.getRotationToBaseFrame(time))

    def getRotationalVelocityVectorInTargetFrame(self, time):
        return np.array([ 0.0, 0.0, self.rotationRate ])

    def getRotationalVelocityVectorInBaseFrame(self, time):
        # Rotation axis is fixed in both frames
        return self.initialRotationToTargetFrame.T @ np.array([ 0.0, 0.0, self.rotationRate ])

class TabulatedRotationalEphemeris(RotationalEphemeris):
    '''
        Interpolates a history of 7-entry rotational states [ qw, qx, qy, qz, wx, wy, wz ]
            Orientation is obtained from the normalized, interpolated quaternion
            Angular velocity (target frame) is interpolated directly, derivatives follow from the kinematic relations in the module docstring
    '''
    def __init__(self, interpolator: OneDimensionalInterpolator, baseFrameOrientation="Inertial", targetFrameOrientation="BodyFixed"):
        super().__init__(baseFrameOrientation, targetFrameOrientation)
        if np.shape(interpolator.dependentValues)[1:] != (7,):
            raise ValueError("Tabulated rotational ephemeris requires 7-entry states, got shape: {}".format(np.shape(interpolator.dependentValues)))
        self.interpolator = interpolator

    @classmethod
    def fromStateHistory(cls, stateHistory, interpolatorType="Lagrange", order=8, boundaryHandling=BoundaryHandling.THROW, **frameNames):
        ''' stateHistory: dict of { time: 7-entry rotational state } '''
        times = sorted(stateHistory.keys())
        states = np.array([ stateHistory[t] for t in times ])
        return cls(interpolatorFactory(interpolatorType, times, states, boundaryHandling, order=order), **frameNames)

    def resetInterpolator(self, interpolator: OneDimensionalInterpolator):
        self.interpolator = interpolator

    def getRotationToBaseFrameQuaternion(self, time):
        return Quaternion(components=self.interpolator(time)[:4]).normalize()

    def getRotationalVelocityVectorInTargetFrame(self, time):
        return self.interpolator(time)[4:]

    def getRotationToBaseFrame(self, time):
        return self.getRotationToBaseFrameQuaternion(time).toRotationMatrix()

    def getDerivativeOfRotationToBaseFrame(self, time):
        state = self.interpolator(time)
        rotationToBaseFrame = Quaternion(components=state[:4]).normalize().toRotationMatrix()
        return rotationToBaseFrame @ crossProductMatrix(state[4:])

    def getRotationalVelocityVectorInBaseFrame(self, time):
        state = self.interpolator(time)
        return Quaternion(components=state[:4]).normalize().toRotationMatrix() @ state[4:]

#### Translational ephemerides ####
class Ephemeris(ABC):
    ''' Interface for translational ephemerides: Cartesian state [ x, y, z, vx, vy, vz ] in the global inertial frame '''

    def __init__(self, frameOrigin="SSB", frameOrientation="Inertial"):
        self.frameOrigin = frameOrigin
        self.frameOrientation = frameOrientation

    @abstractmethod
    def getCartesianState(self, time) -> np.ndarray:
        return

    def getPosition(self, time) -> np.ndarray:
        return self.getCartesianState(time)[:3]

    def getVelocity(self, time) -> np.ndarray:
        return self.getCartesianState(time)[3:]

class ConstantEphemeris(Ephemeris):
    def __init__(self, cartesianState=None, frameOrigin="SSB", frameOrientation="Inertial"):
        super().__init__(frameOrigin, frameOrientation)
        if cartesianState is None:
            cartesianState = np.zeros(6)
        self.cartesianState = np.array(cartesianState, dtype=np.float64)

    def getCartesianState(self, time):
        return self.cartesianState.copy()

class TabulatedCartesianEphemeris(Ephemeris):
    def __init__(self, interpolator: OneDimensionalInterpolator, frameOrigin="SSB", frameOrientation="Inertial"):
        super().__init__(frameOrigin, frameOrientation)
        if np.shape(interpolator.dependentValues)[1:] != (6,):
            raise ValueError("Tabulated cartesian ephemeris requires 6-entry states, got shape: {}".format(np.shape(interpolator.dependentValues)))
        self.interpolator = interpolator

    @classmethod
    def fromStateHistory(cls, stateHistory, interpolatorType="Lagrange", order=8, boundaryHandling=BoundaryHandling.THROW, **frameNames):
        ''' stateHistory: dict of { time: 6-entry cartesian state } '''
        times = sorted(stateHistory.keys())
        states = np.array([ stateHistory[t] for t in times ])
        return cls(interpolatorFactory(interpolatorType, times, states, boundaryHandling, order=order), **frameNames)

    def getCartesianState(self, time):
        return np.array(self.interpolator(time), dtype=np.float64)

def rotationalEphemerisFactory(rotationDictReader=None) -> RotationalEphemeris:
    '''
        Provide a rotationDictReader (`SPINDLE.IO.SubDictReader`) pointed at a body's RotationModel dictionary.
        If none is provided, returns Earth's uniform rotation, starting aligned with the inertial frame at t=0

        Reads:
            type:           'Simple' or 'Constant'
            rotationRate:   (Simple only) rad/s
            initialAngle:   (Simple only) angle from the inertial X axis to the body-fixed X axis at initialTime, rad
            initialTime:    (Simple only)
    '''
    if rotationDictReader is None:
        from SPINDLE.ENV.EarthModelling import EARTH_ROTATION_RATE
        return SimpleRotationalEphemeris(np.eye(3), EARTH_ROTATION_RATE)

    modelType = rotationDictReader.getString("type")

    if modelType == "Simple":
        rotationRate = rotationDictReader.getFloat("rotationRate")
        initialAngle = rotationDictReader.getFloat("initialAngle")
        initialTime = rotationDictReader.getFloat("initialTime")
        return SimpleRotationalEphemeris(getZAxisRotation(initialAngle), rotationRate, initialTime)

    elif modelType == "Constant":
        return ConstantRotationalEphemeris()

    else:
        raise NotImplementedError("Rotation model type: {} not found. Try 'Simple' or 'Constant'".format(modelType))
