'''
Rotation matrices and quaternions between named reference frames.
All functions are pure, take angles in radians, and return either a 3x3 numpy array or a `SPINDLE.Motion.Quaternion`.

Frames:

* I  - Inertial (base) frame
* R  - Rotating planetocentric (body-fixed) frame of the central body, Z along the rotation axis
* V  - Local vertical frame: X north, Y east, Z down (towards the central body)
* T  - Trajectory frame: X along the ground-relative velocity, Z in the vertical plane, pointing down
* AA - Airspeed-based aerodynamic frame: X along the airspeed, Z opposite to the lift
* B  - Body-fixed frame of the vehicle

Naming: get<From>To<To>FrameTransformation<Matrix|Quaternion>. Applying the result to a vector expressed in <From> gives the same vector expressed in <To>.

The single-axis building blocks C_x, C_y, C_z are passive (frame) rotations: C_axis(theta) rotates the frame by +theta,
    which rotates vectors by -theta.
NaN angles produce NaN entries, nothing here raises.
'''
from math import cos, pi, sin

import numpy as np

from SPINDLE.Motion.quaternion import Quaternion

__all__ = [
    "getXAxisRotation", "getYAxisRotation", "getZAxisRotation",
    "getRotatingPlanetocentricToInertialFrameTransformationMatrix", "getRotatingPlanetocentricToInertialFrameTransformationQuaternion",
    "getInertialToPlanetocentricFrameTransformationMatrix", "getInertialToPlanetocentricFrameTransformationQuaternion",
    "getQuaternionObjectFromQuaternionValues", "getQuaternionValuesFromObject",
    "getAirspeedBasedAerodynamicToBodyFrameTransformationMatrix", "getAirspeedBasedAerodynamicToBodyFrameTransformationQuaternion",
    "getBodyToAirspeedBasedAerodynamicFrameTransformationMatrix",
    "getRotatingPlanetocentricToLocalVerticalFrameTransformationMatrix", "getRotatingPlanetocentricToLocalVerticalFrameTransformationQuaternion",
    "getLocalVerticalToRotatingPlanetocentricFrameTransformationMatrix", "getLocalVerticalToRotatingPlanetocentricFrameTransformationQuaternion",
    "getLocalVerticalToTrajectoryFrameTransformationMatrix", "getLocalVerticalToTrajectoryFrameTransformationQuaternion",
    "getTrajectoryToLocalVerticalFrameTransformationMatrix",
    "getTrajectoryToAerodynamicFrameTransformationMatrix", "getTrajectoryToAerodynamicFrameTransformationQuaternion",
    "getAerodynamicToTrajectoryFrameTransformationMatrix",
]

#### Single axis (passive) rotations ####
def getXAxisRotation(angle: float) -> np.ndarray:
    c, s = cos(angle), sin(angle)
    return np.array([
        [ 1.0, 0.0, 0.0 ],
        [ 0.0, c,   s   ],
        [ 0.0, -s,  c   ]
    ])

def getYAxisRotation(angle: float) -> np.ndarray:
    c, s = cos(angle), sin(angle)
    return np.array([
        [ c,   0.0, -s  ],
        [ 0.0, 1.0, 0.0 ],
        [ s,   0.0, c   ]
    ])

def getZAxisRotation(angle: float) -> np.ndarray:
    c, s = cos(angle), sin(angle)
    return np.array([
        [ c,   s,   0.0 ],
        [ -s,  c,   0.0 ],
        [ 0.0, 0.0, 1.0 ]
    ])

def _passiveRotationQuaternion(axis, angle: float) -> Quaternion:
    return Quaternion(axisOfRotation=axis, angle=-angle)

_X = (1.0, 0.0, 0.0)
_Y = (0.0, 1.0, 0.0)
_Z = (0.0, 0.0, 1.0)

#### Inertial <-> Rotating planetocentric ####
def getRotatingPlanetocentricToInertialFrameTransformationMatrix(angleFromXItoXR: float) -> np.ndarray:
    ''' angleFromXItoXR: angle about the common Z axis between the inertial X axis and the planetocentric X axis '''
    return getZAxisRotation(-angleFromXItoXR)

def getRotatingPlanetocentricToInertialFrameTransformationQuaternion(angleFromXItoXR: float) -> Quaternion:
    return _passiveRotationQuaternion(_Z, -angleFromXItoXR)

def getInertialToPlanetocentricFrameTransformationMatrix(angleFromXItoXR: float) -> np.ndarray:
    return getZAxisRotation(angleFromXItoXR)

def getInertialToPlanetocentricFrameTransformationQuaternion(angleFromXItoXR: float) -> Quaternion:
    return _passiveRotationQuaternion(_Z, angleFromXItoXR)

#### Raw component conversion ####
def getQuaternionObjectFromQuaternionValues(quaternionValues) -> Quaternion:
    ''' quaternionValues: array-like [ w, x, y, z ] (scalar-first, the order used in propagated state vectors) '''
    return Quaternion(components=quaternionValues)

def getQuaternionValuesFromObject(quaternion: Quaternion) -> np.ndarray:
    ''' Returns [ w, x, y, z ] '''
    return quaternion.asArray()

#### Aerodynamic <-> Body ####
def getAirspeedBasedAerodynamicToBodyFrameTransformationMatrix(angleOfAttack: float, angleOfSideslip: float) -> np.ndarray:
    return getYAxisRotation(angleOfAttack) @ getZAxisRotation(-angleOfSideslip)

def getAirspeedBasedAerodynamicToBodyFrameTransformationQuaternion(angleOfAttack: float, angleOfSideslip: float) -> Quaternion:
    return _passiveRotationQuaternion(_Y, angleOfAttack) * _passiveRotationQuaternion(_Z, -angleOfSideslip)

def getBodyToAirspeedBasedAerodynamicFrameTransformationMatrix(angleOfAttack: float, angleOfSideslip: float) -> np.ndarray:
    return getAirspeedBasedAerodynamicToBodyFrameTransformationMatrix(angleOfAttack, angleOfSideslip).T

#### Rotating planetocentric <-> Local vertical ####
def getRotatingPlanetocentricToLocalVerticalFrameTransformationMatrix(longitude: float, latitude: float) -> np.ndarray:
    '''
        Local vertical frame: X north, Y east, Z down.
        At the poles (latitude = +-90 deg) longitude only fixes the direction of 'north', the result remains a valid rotation
    '''
    return getYAxisRotation(-latitude - pi/2) @ getZAxisRotation(longitude)

def getRotatingPlanetocentricToLocalVerticalFrameTransformationQuaternion(longitude: float, latitude: float) -> Quaternion:
    return _passiveRotationQuaternion(_Y, -latitude - pi/2) * _passiveRotationQuaternion(_Z, longitude)

def getLocalVerticalToRotatingPlanetocentricFrameTransformationMatrix(longitude: float, latitude: float) -> np.ndarray:
    return getRotatingPlanetocentricToLocalVerticalFrameTransformationMatrix(longitude, latitude).T

def getLocalVerticalToRotatingPlanetocentricFrameTransformationQuaternion(longitude: float, latitude: float) -> Quaternion:
    return getRotatingPlanetocentricToLocalVerticalFrameTransformationQuaternion(longitude, latitude).conjugate()

#### Local vertical <-> Trajectory ####
def getLocalVerticalToTrajectoryFrameTransformationMatrix(headingAngle: float, flightPathAngle: float) -> np.ndarray:
    '''
        headingAngle: angle of the horizontal velocity component, measured from north towards east
        flightPathAngle: angle of the velocity above the local horizontal plane
    '''
    return getYAxisRotation(flightPathAngle) @ getZAxisRotation(headingAngle)

def getLocalVerticalToTrajectoryFrameTransformationQuaternion(headingAngle: float, flightPathAngle: float) -> Quaternion:
    return _passiveRotationQuaternion(_Y, flightPathAngle) * _passiveRotationQuaternion(_Z, headingAngle)

def getTrajectoryToLocalVerticalFrameTransformationMatrix(headingAngle: float, flightPathAngle: float) -> np.ndarray:
    return getLocalVerticalToTrajectoryFrameTransformationMatrix(headingAngle, flightPathAngle).T

#### Trajectory <-> Aerodynamic ####
def getTrajectoryToAerodynamicFrameTransformationMatrix(bankAngle: float) -> np.ndarray:
    return getXAxisRotation(-bankAngle)

def getTrajectoryToAerodynamicFrameTransformationQuaternion(bankAngle: float) -> Quaternion:
    return _passiveRotationQuaternion(_X, -bankAngle)

def getAerodynamicToTrajectoryFrameTransformationMatrix(bankAngle: float) -> np.ndarray:
    return getTrajectoryToAerodynamicFrameTransformationMatrix(bankAngle).T
