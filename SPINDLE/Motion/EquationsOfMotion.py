'''
Equations of motion for rotational (quaternion + angular velocity) and translational (Cowell: position + velocity) state blocks.

Rotational state vector layout (7 entries): [ qw, qx, qy, qz, wx, wy, wz ]
    q: scalar-first quaternion, rotating vectors from the body-fixed (target) frame to the inertial (base) frame
    w: angular velocity of the body-fixed frame w.r.t. the inertial frame, expressed in the body-fixed frame

Translational state vector layout (6 entries): [ x, y, z, vx, vy, vz ], inertial frame, relative to the central body
'''
import numpy as np

from SPINDLE.Motion.quaternion import Quaternion

__all__ = [ "ROTATIONAL_STATE_SIZE", "TRANSLATIONAL_STATE_SIZE", "getQuaternionRateMatrix", "calculateQuaternionDerivative", "calculateAngularAcceleration",
    "computeRotationalStateDerivative", "computeTranslationalStateDerivative", "splitRotationalState", "composeRotationalState", "normalizeQuaternionInState",
    "RotationalEquationsOfMotion", "TranslationalEquationsOfMotion" ]

ROTATIONAL_STATE_SIZE = 7
TRANSLATIONAL_STATE_SIZE = 6

def getQuaternionRateMatrix(angularVelocity) -> np.ndarray:
    '''
        Returns the 4x4 matrix Omega(w) such that dq/dt = 0.5 * Omega(w) @ q for a scalar-first quaternion q and a body-frame angular velocity w.
        Omega(w) @ q is the Hamilton product q * (0, w)
    '''
    wx, wy, wz = angularVelocity
    return np.array([
        [ 0.0, -wx,  -wy,  -wz ],
        [ wx,   0.0,  wz,  -wy ],
        [ wy,  -wz,   0.0,  wx ],
        [ wz,   wy,  -wx,   0.0 ]
    ])

def calculateQuaternionDerivative(quaternion, angularVelocity) -> np.ndarray:
    ''' quaternion: scalar-first components, angularVelocity: body frame (rad/s) '''
    return 0.5 * getQuaternionRateMatrix(angularVelocity) @ np.asarray(quaternion)

def calculateAngularAcceleration(angularVelocity, inertiaTensor, torque) -> np.ndarray:
    '''
        Euler's rigid body equation, solved for dw/dt:
            I @ dw/dt = torque - w x (I @ w)
        All quantities in the body frame. A diagonal inertia tensor is solved component-wise (exact for principal-axis problems)
    '''
    angularVelocity = np.asarray(angularVelocity)
    angularMomentum = inertiaTensor @ angularVelocity
    netTorque = np.asarray(torque) - np.cross(angularVelocity, angularMomentum)

    diagonal = np.diagonal(inertiaTensor)
    if not np.any(inertiaTensor - np.diag(diagonal)):
        return netTorque / diagonal
    return np.linalg.solve(inertiaTensor, netTorque)

def computeRotationalStateDerivative(rotationalState, inertiaTensor, torque) -> np.ndarray:
    ''' Returns d/dt of a 7-entry rotational state, given the inertia tensor and the net torque (both in the body frame) '''
    quaternion = rotationalState[:4]
    angularVelocity = rotationalState[4:]

    stateDerivative = np.empty(ROTATIONAL_STATE_SIZE)
    stateDerivative[:4] = calculateQuaternionDerivative(quaternion, angularVelocity)
    stateDerivative[4:] = calculateAngularAcceleration(angularVelocity, inertiaTensor, torque)
    return stateDerivative

def computeTranslationalStateDerivative(translationalState, acceleration) -> np.ndarray:
    ''' Cowell formulation: d/dt [ r, v ] = [ v, a ] '''
    stateDerivative = np.empty(TRANSLATIONAL_STATE_SIZE)
    stateDerivative[:3] = translationalState[3:]
    stateDerivative[3:] = acceleration
    return stateDerivative

def splitRotationalState(rotationalState):
    ''' Returns (Quaternion, angularVelocity) '''
    return Quaternion(components=rotationalState[:4]), np.array(rotationalState[4:], dtype=np.float64)

def composeRotationalState(orientation, angularVelocity) -> np.ndarray:
    ''' orientation: `SPINDLE.Motion.Quaternion` or array-like [ w, x, y, z ] '''
    return np.concatenate(( np.asarray(list(orientation), dtype=np.float64), np.asarray(angularVelocity, dtype=np.float64) ))

def normalizeQuaternionInState(rotationalState) -> np.ndarray:
    ''' Returns a copy of the rotational state with a unit quaternion '''
    normalizedState = np.array(rotationalState, dtype=np.float64)
    normalizedState[:4] /= np.linalg.norm(normalizedState[:4])
    return normalizedState

class RotationalEquationsOfMotion():
    '''
        Rigid body rotational dynamics for a single body with a constant inertia tensor.
        Called with (time, rotationalState, torque), or with (time, rotationalState) if a torqueFunction(time, rotationalState) was provided
    '''
    def __init__(self, inertiaTensor, torqueFunction=None):
        self.inertiaTensor = np.asarray(inertiaTensor, dtype=np.float64)
        self.torqueFunction = torqueFunction

    def __call__(self, time, rotationalState, torque=None):
        if torque is None:
            if self.torqueFunction is None:
                torque = np.zeros(3)
            else:
                torque = self.torqueFunction(time, rotationalState)

        return computeRotationalStateDerivative(rotationalState, self.inertiaTensor, torque)

class TranslationalEquationsOfMotion():
    ''' Cowell translational dynamics. accelerationFunction(time, translationalState) returns the total inertial acceleration '''

    def __init__(self, accelerationFunction=None):
        self.accelerationFunction = accelerationFunction

    def __call__(self, time, translationalState, acceleration=None):
        if acceleration is None:
            acceleration = np.zeros(3) if self.accelerationFunction is None else self.accelerationFunction(time, translationalState)
        return computeTranslationalStateDerivative(translationalState, acceleration)
