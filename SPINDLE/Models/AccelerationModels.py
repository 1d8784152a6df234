'''
Acceleration models. All share the contract:
    getAcceleration(time, bodyMap) -> acceleration of the body, in the inertial frame
'''
from abc import ABC, abstractmethod

import numpy as np

from SPINDLE.Models.aerodynamicAngles import AerodynamicAngleCalculator
from SPINDLE.Models.aerodynamicCoefficients import getDynamicPressure

__all__ = [ "AccelerationModel", "CentralGravityAcceleration", "AerodynamicAcceleration", "AccelerationModelAggregator", "accelerationModelFactory" ]

class AccelerationModel(ABC):
    @abstractmethod
    def getAcceleration(self, time, bodyMap) -> np.ndarray:
        return

class CentralGravityAcceleration(AccelerationModel):
    ''' Gravity of the central body's gravity model, evaluated in its body-fixed frame and rotated into the inertial frame '''

    def __init__(self, bodyName, centralBodyName):
        self.bodyName = bodyName
        self.centralBodyName = centralBodyName

    def getAcceleration(self, time, bodyMap):
        centralBody = bodyMap[self.centralBodyName]
        if centralBody.gravityModel is None:
            raise ValueError("Central body {} has no gravity model".format(self.centralBodyName))

        relativePosition = bodyMap[self.bodyName].getPosition() - centralBody.getPosition()
        rotationToBodyFixedFrame = centralBody.getCurrentRotationToLocalFrame()

        bodyFixedAcceleration = centralBody.gravityModel.getGravitationalAcceleration(rotationToBodyFixedFrame @ relativePosition)
        return rotationToBodyFixedFrame.T @ bodyFixedAcceleration

class AerodynamicAcceleration(AccelerationModel):
    ''' Aerodynamic force from the body's `SPINDLE.Models.AerodynamicCoefficients`, divided by its mass '''

    def __init__(self, bodyName, centralBodyName, angleCalculator: AerodynamicAngleCalculator=None):
        self.bodyName = bodyName
        self.centralBodyName = centralBodyName
        if angleCalculator is None:
            angleCalculator = AerodynamicAngleCalculator(bodyName, centralBodyName)
        self.angleCalculator = angleCalculator

    def getAcceleration(self, time, bodyMap):
        body = bodyMap[self.bodyName]
        atmosphere = bodyMap[self.centralBodyName].atmosphereModel
        if body.aerodynamicCoefficients is None or atmosphere is None:
            raise ValueError("Aerodynamic acceleration of {} requires aerodynamic coefficients and a central body atmosphere model".format(self.bodyName))

        angles = self.angleCalculator.update(bodyMap)
        altitude = np.linalg.norm(angles.planetocentricPosition) - bodyMap[self.centralBodyName].shapeRadius
        dynamicPressure = getDynamicPressure(atmosphere.getDensity(altitude, time), angles.airspeed)

        aerodynamicFrameForce = body.aerodynamicCoefficients.getForceInAerodynamicFrame(dynamicPressure, angles.angleOfAttack, angles.sideslipAngle)
        return self.angleCalculator.getRotationMatrixBetweenFrames("Aerodynamic", "Inertial") @ aerodynamicFrameForce / body.mass

class AccelerationModelAggregator():
    ''' Sums the accelerations of several models acting on one body '''

    def __init__(self, accelerationModels=None):
        ''' accelerationModels: dict of { name: AccelerationModel } '''
        self.accelerationModels = {} if accelerationModels is None else dict(accelerationModels)
        self.lastAccelerations = {}

    def addAccelerationModel(self, name, accelerationModel: AccelerationModel):
        self.accelerationModels[name] = accelerationModel

    def getTotalAcceleration(self, time, bodyMap) -> np.ndarray:
        totalAcceleration = np.zeros(3)
        for name, model in self.accelerationModels.items():
            acceleration = model.getAcceleration(time, bodyMap)
            self.lastAccelerations[name] = acceleration
            totalAcceleration += acceleration

        return totalAcceleration

def accelerationModelFactory(accelerationDictReader, bodyName, centralBodyName) -> AccelerationModel:
    '''
        accelerationDictReader: `SPINDLE.IO.SubDictReader` pointed at a single acceleration model's dictionary (ex. 'Bodies.Capsule.Accelerations.Gravity')
        Reads 'class': 'CentralGravity' or 'Aerodynamic'
    '''
    modelClass = accelerationDictReader.getString("class")

    if modelClass == "CentralGravity":
        return CentralGravityAcceleration(bodyName, centralBodyName)
    elif modelClass == "Aerodynamic":
        return AerodynamicAcceleration(bodyName, centralBodyName)
    else:
        raise NotImplementedError("Acceleration model: {} not implemented. Try 'CentralGravity' or 'Aerodynamic'".format(modelClass))
