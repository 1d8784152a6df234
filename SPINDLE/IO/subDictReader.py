'''
    Wrapper class to read from a specific sub-dictionary in a SimDefinition.
'''
from typing import List, Union

import numpy as np

from SPINDLE.Utilities import evalExpression, strtobool

__all__ = [ "SubDictReader" ]

class SubDictReader():

    def __init__(self, stringPathToThisItemsSubDictionary, simDefinition):
        '''
            Example stringPathToThisItemsSubDictionary = 'Bodies.Capsule' if we're initializing the Capsule body
        '''
        self.simDefDictPathToReadFrom = stringPathToThisItemsSubDictionary
        self.simDefinition = simDefinition

    def getString(self, key):
        '''
            Pass in either relative key or absolute key:
                Ex 1 (Relative): If object subdictionary (self.simDefDictPathToReadFrom) is 'Bodies.Capsule', relative keys could be 'mass' or 'Aero.referenceArea'
                    These would retrieve Bodies.Capsule.mass or Bodies.Capsule.Aero.referenceArea from the sim definition
                Ex 2 (Absolute): Can also pass in full absolute key, like 'SimControl.timeStep', and it will retrieve that value, as long as there isn't a 'path collision' with a relative path
        '''
        try:
            return self.simDefinition.getValue(self.simDefDictPathToReadFrom + "." + key)
        except KeyError:
            try:
                return self.simDefinition.getValue(key)
            except KeyError:
                attemptedKey1 = self.simDefDictPathToReadFrom + "." + key
                raise KeyError("{} and {} not found in {} or in default value dictionary".format(attemptedKey1, key, self.simDefinition.fileName))

    #### Get parsed values ####
    def getInt(self, key: str) -> int:
        return int(self.getString(key))

    def getFloat(self, key: str) -> float:
        ''' Accepts plain numbers or simple expressions like 'pi/2' or '6378137 + 120e3' '''
        return _parseFloat(self.getString(key))

    def getVector(self, key: str) -> np.ndarray:
        ''' Parses '(1 2 3)' or '1 2 3' into a numpy array. Any number of components is accepted '''
        return _parseVector(self.getString(key))

    def getBool(self, key: str) -> bool:
        return strtobool(self.getString(key))

    #### Try get values (return specified default value if not found) ####
    def tryGetString(self, key: str, defaultValue: Union[None, str]=None):
        try:
            return self.getString(key)
        except KeyError:
            return defaultValue

    def tryGetInt(self, key: str, defaultValue: Union[None, int]=None):
        try:
            return self.getInt(key)
        except KeyError:
            return defaultValue

    def tryGetFloat(self, key: str, defaultValue: Union[None, float]=None):
        try:
            return self.getFloat(key)
        except KeyError:
            return defaultValue

    def tryGetVector(self, key: str, defaultValue: Union[None, np.ndarray]=None):
        try:
            return self.getVector(key)
        except KeyError:
            return defaultValue

    def tryGetBool(self, key: str, defaultValue: Union[None, bool]=None):
        try:
            return self.getBool(key)
        except KeyError:
            return defaultValue

    #### Introspection ####
    def getImmediateSubDicts(self, key=None) -> List[str]:
        if key is None:
            key = self.simDefDictPathToReadFrom
        return self.simDefinition.getImmediateSubDicts(key)

    def getSubKeys(self, key=None) -> List[str]:
        if key is None:
            key = self.simDefDictPathToReadFrom
        return self.simDefinition.getSubKeys(key)

    def getImmediateSubKeys(self, key=None) -> List[str]:
        if key is None:
            key = self.simDefDictPathToReadFrom
        return self.simDefinition.getImmediateSubKeys(key)

    def getDictName(self) -> str:
        return self.simDefDictPathToReadFrom.split('.')[-1]

    def getSubReader(self, relativeKey: str) -> "SubDictReader":
        return SubDictReader(self.simDefDictPathToReadFrom + "." + relativeKey, self.simDefinition)

def _parseFloat(stringValue: str) -> float:
    try:
        return float(stringValue)
    except ValueError:
        return float(evalExpression(stringValue))

def _parseVector(stringValue: str) -> np.ndarray:
    components = stringValue.strip().strip("()").replace(",", " ").split()
    if len(components) == 0:
        raise ValueError("Unable to parse vector from: '{}'".format(stringValue))
    return np.array([ _parseFloat(component) for component in components ])
