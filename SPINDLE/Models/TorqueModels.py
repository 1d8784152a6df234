'''
Torque models. All share the contract:
    getTorque(time, bodyMap) -> torque about the body's CG, in the body-fixed frame

`TorqueModelAggregator` sums the torques acting on one body, and remembers each model's last contribution for output
'''
from abc import ABC, abstractmethod

import numpy as np

from SPINDLE.Models.aerodynamicAngles import AerodynamicAngleCalculator
from SPINDLE.Models.aerodynamicCoefficients import getDynamicPressure

__all__ = [ "TorqueModel", "ConstantTorque", "AerodynamicTorque", "TorqueModelAggregator", "torqueModelFactory" ]

class TorqueModel(ABC):
    @abstractmethod
    def getTorque(self, time, bodyMap) -> np.ndarray:
        return

class ConstantTorque(TorqueModel):
    def __init__(self, torque):
        self.torque = np.array(torque, dtype=np.float64)

    def getTorque(self, time, bodyMap):
        return self.torque

class AerodynamicTorque(TorqueModel):
    ''' Aerodynamic moment from the body's `SPINDLE.Models.AerodynamicCoefficients`, in the central body's atmosphere '''

    def __init__(self, bodyName, centralBodyName, angleCalculator: AerodynamicAngleCalculator=None):
        self.bodyName = bodyName
        self.centralBodyName = centralBodyName
        if angleCalculator is None:
            angleCalculator = AerodynamicAngleCalculator(bodyName, centralBodyName)
        self.angleCalculator = angleCalculator

    def getTorque(self, time, bodyMap):
        body = bodyMap[self.bodyName]
        atmosphere = bodyMap[self.centralBodyName].atmosphereModel
        if body.aerodynamicCoefficients is None or atmosphere is None:
            raise ValueError("Aerodynamic torque on {} requires aerodynamic coefficients and a central body atmosphere model".format(self.bodyName))

        angles = self.angleCalculator.update(bodyMap)
        altitude = np.linalg.norm(angles.planetocentricPosition) - bodyMap[self.centralBodyName].shapeRadius
        dynamicPressure = getDynamicPressure(atmosphere.getDensity(altitude, time), angles.airspeed)

        return body.aerodynamicCoefficients.getMomentInBodyFrame(dynamicPressure, angles.angleOfAttack, angles.sideslipAngle)

class TorqueModelAggregator():
    ''' Sums the torques of several models acting on one body '''

    def __init__(self, torqueModels=None):
        '''
            torqueModels: dict of { name: TorqueModel }. An empty dict produces zero torque
        '''
        self.torqueModels = {} if torqueModels is None else dict(torqueModels)
        self.lastTorques = {}

    def addTorqueModel(self, name, torqueModel: TorqueModel):
        self.torqueModels[name] = torqueModel

    def getTotalTorque(self, time, bodyMap) -> np.ndarray:
        totalTorque = np.zeros(3)
        for name, model in self.torqueModels.items():
            torque = model.getTorque(time, bodyMap)
            self.lastTorques[name] = torque
            totalTorque += torque

        return totalTorque

    def getLastTorque(self, name) -> np.ndarray:
        try:
            return self.lastTorques[name]
        except KeyError:
            raise KeyError("Torque model {} has not been evaluated. Evaluated models: {}".format(name, list(self.lastTorques.keys())))

def torqueModelFactory(torqueDictReader, bodyName, centralBodyName) -> TorqueModel:
    '''
        torqueDictReader: `SPINDLE.IO.SubDictReader` pointed at a single torque model's dictionary (ex. 'Bodies.Capsule.Torques.Aero')
        Reads 'class': 'AerodynamicTorque' or 'ConstantTorque'
    '''
    modelClass = torqueDictReader.getString("class")

    if modelClass == "AerodynamicTorque":
        return AerodynamicTorque(bodyName, centralBodyName)
    elif modelClass == "ConstantTorque":
        return ConstantTorque(torqueDictReader.getVector("torque"))
    else:
        raise NotImplementedError("Torque model: {} not implemented. Try 'AerodynamicTorque' or 'ConstantTorque'".format(modelClass))
