'''
Aerodynamic angles of a body flying through a central body's co-rotating atmosphere, and the chain of frame rotations they define:

    Inertial -> Planetocentric (rotating) -> LocalVertical -> Trajectory -> Aerodynamic -> Body
                 (central body rotation)    (lon, lat)       (heading,    (bank)         (angle of attack,
                                                               flight path)                sideslip)

Frame definitions:
    LocalVertical:  X north, Y east, Z down
    Trajectory:     X along the airspeed vector, Z in the vertical plane, downwards for level flight
    Aerodynamic:    X along the airspeed vector, rotated from the trajectory frame about X by the bank angle
    Body:           body-fixed frame, obtained from the body's current orientation

All angles in radians. Airspeed is computed assuming the atmosphere rotates with the central body.
'''
from collections import namedtuple
from math import asin, atan2, sqrt

import numpy as np

from SPINDLE.ENV import cartesianToSpherical
from SPINDLE.Motion import (getAirspeedBasedAerodynamicToBodyFrameTransformationMatrix,
                            getLocalVerticalToTrajectoryFrameTransformationMatrix,
                            getRotatingPlanetocentricToLocalVerticalFrameTransformationMatrix,
                            getTrajectoryToAerodynamicFrameTransformationMatrix)
from SPINDLE.Utilities import cacheLastResult

__all__ = [ "AerodynamicAngles", "FRAME_CHAIN", "computeAerodynamicAngles", "AerodynamicAngleCalculator" ]

FRAME_CHAIN = [ "Inertial", "Planetocentric", "LocalVertical", "Trajectory", "Aerodynamic", "Body" ]

AerodynamicAngles = namedtuple(
    "AerodynamicAngles",
    [
        "latitude",
        "longitude",
        "headingAngle",
        "flightPathAngle",
        "angleOfAttack",
        "sideslipAngle",
        "bankAngle",
        "airspeed",
        "planetocentricPosition",
        "chainRotations", # Rotation matrices between consecutive frames in FRAME_CHAIN: chainRotations[i] rotates from FRAME_CHAIN[i] to FRAME_CHAIN[i+1]
    ]
)

@cacheLastResult
def computeAerodynamicAngles(relativePosition, relativeVelocity, rotationToPlanetocentricFrame, centralBodyAngularVelocity, rotationToBodyFrame) -> AerodynamicAngles:
    '''
        relativePosition/relativeVelocity:  body state relative to the central body, inertial frame
        rotationToPlanetocentricFrame:      3x3, inertial to central body-fixed frame
        centralBodyAngularVelocity:         central body angular velocity, inertial frame
        rotationToBodyFrame:                3x3, inertial to body-fixed frame
    '''
    planetocentricPosition = rotationToPlanetocentricFrame @ relativePosition
    _, latitude, longitude = cartesianToSpherical(planetocentricPosition)

    # Airspeed, in the co-rotating atmosphere
    airVelocity = rotationToPlanetocentricFrame @ (relativeVelocity - np.cross(centralBodyAngularVelocity, relativePosition))
    airspeed = float(np.linalg.norm(airVelocity))

    planetocentricToLocalVertical = getRotatingPlanetocentricToLocalVerticalFrameTransformationMatrix(longitude, latitude)
    vN, vE, vD = planetocentricToLocalVertical @ airVelocity
    headingAngle = atan2(vE, vN)
    flightPathAngle = atan2(-vD, sqrt(vN*vN + vE*vE))
    localVerticalToTrajectory = getLocalVerticalToTrajectoryFrameTransformationMatrix(headingAngle, flightPathAngle)

    # Airspeed direction in the body frame is the first column of the trajectory-to-body rotation
    trajectoryToBody = rotationToBodyFrame @ rotationToPlanetocentricFrame.T @ planetocentricToLocalVertical.T @ localVerticalToTrajectory.T
    uX, uY, uZ = trajectoryToBody[:, 0]
    angleOfAttack = atan2(uZ, uX)
    sideslipAngle = asin(max(-1.0, min(1.0, uY)))
    aerodynamicToBody = getAirspeedBasedAerodynamicToBodyFrameTransformationMatrix(angleOfAttack, sideslipAngle)

    # What remains is a rotation about the airspeed vector
    trajectoryToAerodynamic = aerodynamicToBody.T @ trajectoryToBody
    bankAngle = atan2(trajectoryToAerodynamic[2,1], trajectoryToAerodynamic[1,1])

    chainRotations = [
        rotationToPlanetocentricFrame,
        planetocentricToLocalVertical,
        localVerticalToTrajectory,
        getTrajectoryToAerodynamicFrameTransformationMatrix(bankAngle),
        aerodynamicToBody
    ]

    return AerodynamicAngles(latitude, longitude, headingAngle, flightPathAngle, angleOfAttack, sideslipAngle, bankAngle, airspeed, planetocentricPosition, chainRotations)

class AerodynamicAngleCalculator():
    '''
        Computes the aerodynamic angles of one body relative to a central body, from the bodies' current states in a `SPINDLE.ENV.NamedBodyMap`.
        Call update(bodyMap) once per environment update, then query angles and rotation matrices
    '''
    def __init__(self, bodyName, centralBodyName):
        self.bodyName = bodyName
        self.centralBodyName = centralBodyName
        self.currentAngles = None

    def update(self, bodyMap) -> AerodynamicAngles:
        body = bodyMap[self.bodyName]
        centralBody = bodyMap[self.centralBodyName]

        self.currentAngles = computeAerodynamicAngles(
            body.getPosition() - centralBody.getPosition(),
            body.getVelocity() - centralBody.getVelocity(),
            centralBody.getCurrentRotationToLocalFrame(),
            centralBody.getCurrentAngularVelocityInGlobalFrame(),
            body.getCurrentRotationToLocalFrame()
        )
        return self.currentAngles

    def _getAngles(self) -> AerodynamicAngles:
        if self.currentAngles is None:
            raise ValueError("Aerodynamic angles of {} not computed yet. Call update(bodyMap) first".format(self.bodyName))
        return self.currentAngles

    def getLatitude(self):
        return self._getAngles().latitude

    def getLongitude(self):
        return self._getAngles().longitude

    def getHeadingAngle(self):
        return self._getAngles().headingAngle

    def getFlightPathAngle(self):
        return self._getAngles().flightPathAngle

    def getAngleOfAttack(self):
        return self._getAngles().angleOfAttack

    def getSideslipAngle(self):
        return self._getAngles().sideslipAngle

    def getBankAngle(self):
        return self._getAngles().bankAngle

    def getAirspeed(self):
        return self._getAngles().airspeed

    def getAllAngles(self) -> np.ndarray:
        ''' [ latitude, longitude, heading, flight path angle, angle of attack, sideslip, bank ] '''
        angles = self._getAngles()
        return np.array(angles[:7])

    def getRotationMatrixBetweenFrames(self, fromFrame: str, toFrame: str) -> np.ndarray:
        ''' fromFrame/toFrame: any of the names in FRAME_CHAIN. Returns the matrix rotating vectors from fromFrame to toFrame '''
        try:
            fromIndex, toIndex = FRAME_CHAIN.index(fromFrame), FRAME_CHAIN.index(toFrame)
        except ValueError:
            raise ValueError("Frames must be one of: {}, got: {} and {}".format(FRAME_CHAIN, fromFrame, toFrame))

        chainRotations = self._getAngles().chainRotations
        rotation = np.eye(3)
        for i in range(min(fromIndex, toIndex), max(fromIndex, toIndex)):
            rotation = chainRotations[i] @ rotation

        return rotation if fromIndex <= toIndex else rotation.T

