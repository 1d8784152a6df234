'''
Reading, writing and modifying simulation definition (.spindle) files, the master dictionary of
default values, and utility functions for working with dot-separated string keys
'''
import re
import shlex
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Tuple, Union

__all__ = [ "defaultConfigValues", "SimDefinition", "getAbsoluteFilePath", "isSubKey", "getKeyLevel", "getParentKeyAtLevel",
    "getImmediateSubKey", "splitKeyAtLevel" ]

#################### Default value dictionary  #########################
defaultConfigValues = {
    "SimControl.startTime":                                 "0",
    "SimControl.EndCondition":                              "Time",
    "SimControl.EndConditionValue":                         "100",
    "SimControl.loggingLevel":                              "1",
    "SimControl.dependentVariables":                        "None",
    "SimControl.timeDiscretization":                        "RK45Adaptive",
    "SimControl.timeStep":                                  "1",
    "SimControl.TimeStepAdaptation.controller":             "elementary",
    "SimControl.TimeStepAdaptation.minTimeStep":            "1e-6",
    "SimControl.TimeStepAdaptation.maxTimeStep":            "inf",
    "SimControl.TimeStepAdaptation.relativeTolerance":      "1e-10",
    "SimControl.TimeStepAdaptation.absoluteTolerance":      "1e-10",
    "SimControl.TimeStepAdaptation.minFactor":              "0.1",
    "SimControl.TimeStepAdaptation.maxFactor":              "4.0",
    "SimControl.TimeStepAdaptation.Elementary.safetyFactor":"0.8",
    "SimControl.Interpolation.type":                        "Lagrange",
    "SimControl.Interpolation.order":                       "8",
    "SimControl.Interpolation.boundaryHandling":            "Throw",

    # Class-based defaults: apply to any dictionary containing 'class <ClassName>'
    "CentralBody.mass":                                     "0",
    "CentralBody.position":                                 "(0 0 0)",
    "CentralBody.gravityModel":                             "PointMass",
    "CentralBody.gravitationalParameter":                   "3.986004418e14",
    "CentralBody.radius":                                   "6378137",
    "CentralBody.zonalCoefficients":                        "(1.08262668e-3 -2.53265649e-6 -1.61962159e-6)",
    "CentralBody.atmosphereModel":                          "None",
    "CentralBody.ConstantAtmosphere.temp":                  "15",
    "CentralBody.ConstantAtmosphere.pressure":              "101325",
    "CentralBody.ConstantAtmosphere.density":               "1.225",
    "CentralBody.ExponentialAtmosphere.scaleHeight":        "7.2e3",
    "CentralBody.ExponentialAtmosphere.surfaceDensity":     "1.225",
    "CentralBody.ExponentialAtmosphere.temperature":        "246",
    "CentralBody.ExponentialAtmosphere.specificGasConstant":"287",
    "CentralBody.RotationModel.type":                       "Simple",
    "CentralBody.RotationModel.rotationRate":               "7.292115e-5",
    "CentralBody.RotationModel.initialAngle":               "0",
    "CentralBody.RotationModel.initialTime":                "0",

    "Vehicle.centralBody":                                  "Earth",
    "Vehicle.propagateTranslation":                         "true",
    "Vehicle.propagateRotation":                            "true",
    "Vehicle.InitialState.angularVelocity":                 "(0 0 0)",
    "Vehicle.InitialState.angleOfAttack":                   "0",
    "Vehicle.InitialState.sideslipAngle":                   "0",
    "Vehicle.InitialState.bankAngle":                       "0",
    "Vehicle.Aero.referenceArea":                           "1",
    "Vehicle.Aero.referenceLength":                         "1",
    "Vehicle.Aero.forceCoefficients":                       "(0 0 0)",
    "Vehicle.Aero.momentCoefficients":                      "(0 0 0)",
    "Vehicle.Aero.momentCoefficientAlphaDerivatives":       "(0 0 0)",
    "Vehicle.Aero.momentCoefficientBetaDerivatives":        "(0 0 0)",

    "ConstantTorque.torque":                                "(0 0 0)"
}

simDefinitionHelpMessage = \
"""
    All non-empty, non-comment lines are expected to end in either:
    {   (dictionary start)
    }   (dictionary end)

    Or to contain a space-separated key-value pair:
    key value
"""
class SimDefinition():

    #### Parsing / Initialization ####
    def __init__(self, fileName=None, dictionary=None, silent=False, defaultDict=None):
        '''
        Parse simulation definition files into a dictionary of string values accessible by string keys.

        Inputs:
            * fileName: (str) path to simulation definition file
            * dictionary: (dict[str,str]) if not providing a fileName, provide a pre-parsed dictionary equivalent to a simulation definition file
            * silent: (bool) Console output control
            * defaultDict: (dict[str,str]) custom dictionary of default values. If none is provided, defaultConfigValues is used.

        Example:
            The file contents:
                'SimControl{
                    &nbsp;&nbsp;&nbsp;&nbsp;timeDiscretization RK4
                }'
            Would be parsed into a single-key Python dictionary, stored in self.dict:
            `{ "SimControl.timeDiscretization": "RK4"}`
        '''
        self.silent = silent

        self.dict = None # type: Dict[str,str]
        ''' Main dictionary of values, usually populated from a simulation definition file '''

        self.defaultDict = defaultConfigValues if defaultDict is None else defaultDict
        ''' Fills in for missing values in self.dict '''

        if fileName is not None:
            self._parseSimDefinitionFile(fileName)
        elif dictionary is not None:
            self.dict = dictionary
            self.fileName = fileName
        else:
            raise ValueError("No fileName or dictionary provided to initialize the SimDefinition")

        self._resetUsedAndUnusedKeyTrackers()

    def _parseSimDefinitionFile(self, fileName):
        self.fileName = fileName
        self.dict = {}

        with open(fileName, "r") as file:
            workingText = file.read()

        # Strip comments and blank lines
        workingText = re.sub(re.compile("#.*"), "", workingText)
        lines = [ line.strip() for line in workingText.split('\n') if line.strip() != '' ]

        nextLine = self._parseDictionaryContents(lines, 0, "")
        if nextLine < len(lines):
            raise ValueError("Unmatched '}}' on line: '{}' in {}".format(lines[nextLine], fileName))

    def _parseDictionaryContents(self, lines, startLine, currDictName, allowKeyOverwriting=False) -> int:
        '''
            Parses the contents of a single (sub)dictionary, recursing into nested dictionaries.
            Returns the index of the line that closed the dictionary (or len(lines) at the end of the file)
        '''
        i = startLine
        while i < len(lines):
            line = lines[i]
            words = line.split()

            if words[0] == "!create":
                i = self._parseDerivedDictionary(lines, i, currDictName)

            elif line[-1] == '{':
                subDictName = _joinKey(currDictName, line[:-1].strip())
                i = self._parseDictionaryContents(lines, i+1, subDictName, allowKeyOverwriting)
                if i >= len(lines):
                    raise ValueError("Dictionary {} not closed in {}".format(subDictName, self.fileName))

            elif line == '}':
                return i

            elif len(words) > 1:
                key = _joinKey(currDictName, words[0])
                if key in self.dict and not allowKeyOverwriting:
                    raise ValueError("Duplicate Key: {} in File: {}".format(key, self.fileName))
                self.dict[key] = " ".join(words[1:])

            else:
                print(simDefinitionHelpMessage)
                raise ValueError("Problem reading line {}".format(line))

            i += 1

        return i

    def _parseDerivedDictionary(self, lines, initializationLine, currDictName) -> int:
        '''
            Parse a dictionary derived from another one:
                !create DerivedDict from ParentDict{
                    !replace "oldText" "newText"
                    !removeKeysContaining someText
                    key value
                }
            The parent dictionary must be defined above the derived one.
            Returns the index of the line closing the derived dictionary
        '''
        definitionLine = lines[initializationLine].split()
        if len(definitionLine) != 4 or definitionLine[2] != "from" or definitionLine[-1][-1] != "{":
            raise ValueError("Expected '!create <Name> from <ParentDict>{{', got: '{}'".format(lines[initializationLine]))

        derivedDictName = _joinKey(currDictName, definitionLine[1])
        parentDictName = definitionLine[-1][:-1]

        parentKeys = self.getSubKeys(parentDictName)
        if len(parentKeys) == 0:
            raise ValueError("Dictionary to derive from: {} is not defined before {} in {}".format(parentDictName, derivedDictName, self.fileName))

        derivedDict = { key.replace(parentDictName, derivedDictName, 1): self.dict[key] for key in parentKeys }

        i = initializationLine + 1
        while i < len(lines) and lines[i][0] == "!":
            command = shlex.split(lines[i])

            if command[0] == "!replace":
                toReplace, replaceWith = command[1], command[-1]
                derivedDict = { key.replace(toReplace, replaceWith): value.replace(toReplace, replaceWith) for key, value in derivedDict.items() }

            elif command[0] == "!removeKeysContaining":
                derivedDict = { key: value for key, value in derivedDict.items() if command[1] not in key }

            else:
                raise ValueError("Command: {} not implemented. Try using !replace or !removeKeysContaining".format(command[0]))

            i += 1

        for key, value in derivedDict.items():
            if key in self.dict:
                raise ValueError("Derived dict key {} already exists in {}".format(key, self.fileName))
            self.dict[key] = value

        # Values defined inside the derived dictionary override inherited ones
        return self._parseDictionaryContents(lines, i, derivedDictName, allowKeyOverwriting=True)

    #### Normal Usage ####
    def getValue(self, key: str) -> str:
        '''
            Key should be a string of format "DictionaryName.SubdictionaryName.Key"
            Always returns a string.
            Falls back to defaultDict, and then to class-based default values, if the key is not present in self.dict
        '''
        key = key.strip()

        if key in self.dict:
            self.unaccessedFields.discard(key)
            return self.dict[key]

        elif key in self.defaultDict:
            self.defaultValuesUsed.add(key)
            return self.defaultDict[key]

        classBasedDefaultValue = self._getClassBasedDefaultValue(key)
        if classBasedDefaultValue is not None:
            return classBasedDefaultValue

        raise KeyError("Key: {} not found in {} or default config values".format(key, self.fileName))

    def setValue(self, key: str, value) -> None:
        ''' Will add the entry if it's not present '''
        self.dict[key.strip()] = value

    def removeKey(self, key: str):
        if key in self.dict:
            self.unaccessedFields.discard(key)
            return self.dict.pop(key)

        print("Warning: " + key + " not found, can't delete")
        return None

    def setIfAbsent(self, key: str, value):
        ''' Sets a value, only if it doesn't currently exist in the dictionary '''
        if key not in self.dict:
            self.setValue(key, value)

    def writeToFile(self, fileName: str, writeHeader=True) -> None:
        '''
            Write a (potentially modified) sim definition to file.
            Newly written file will not contain any comments!
        '''
        self.fileName = fileName

        with open(fileName, 'w') as file:
            if writeHeader:
                file.write("# SPINDLE\n")
                file.write("# File: {}\n".format(fileName))
                file.write("# Autowritten on: " + str(datetime.now()) + "\n")

            # Sorted keys keep members of each dictionary together
            openDicts = []
            for key in sorted(self.dict.keys()):
                keyDicts = key.split('.')[:-1]

                # Number of leading dictionaries shared with the currently open ones
                nShared = 0
                while nShared < min(len(openDicts), len(keyDicts)) and openDicts[nShared] == keyDicts[nShared]:
                    nShared += 1

                for depth in range(len(openDicts)-1, nShared-1, -1):
                    file.write("\t"*depth + "}\n")

                for depth in range(nShared, len(keyDicts)):
                    file.write("\n" + "\t"*depth + keyDicts[depth] + "{\n")

                openDicts = keyDicts
                file.write("\t"*len(openDicts) + key.split('.')[-1] + "\t" + self.dict[key] + "\n")

            for depth in range(len(openDicts)-1, -1, -1):
                file.write("\t"*depth + "}\n")

    #### Introspection / Key Gymnastics ####
    def findKeysContaining(self, keyContains: List[str]) -> List[str]:
        '''
            Returns a list of all keys that contain all of the strings in keyContains, or None

            ## Example
                findKeysContaining(["class"]) ->
                [ "Bodies.Earth.class", "Bodies.Capsule.class", "Bodies.Capsule.Torques.Aero.class", etc... ]
        '''
        matchingKeys = [ key for key in self.dict.keys() if all(s in key for s in keyContains) ]
        return matchingKeys if len(matchingKeys) > 0 else None

    def getSubKeys(self, key: str) -> List[str]:
        '''
            Returns a list of all keys that are children of key

            ## Example
                getSubKeys("Bodies.Capsule") ->
                [ "Bodies.Capsule.mass", "Bodies.Capsule.InitialState.altitude", etc... ]
        '''
        return [ currentKey for currentKey in self.dict.keys() if isSubKey(key, currentKey) ]

    def getImmediateSubKeys(self, key: str) -> List[str]:
        '''
            Returns all keys that are immediate children of the parentKey (one 'level' lower)

            .. note:: Will not return subdictionaries, only keys that have a value associated with them. Use self.getImmediateSubDicts() to discover sub-dictionaries
        '''
        keyLevel = getKeyLevel(key)
        return [ subKey for subKey in self.getSubKeys(key) if getKeyLevel(subKey) == keyLevel + 1 ]

    def getImmediateSubDicts(self, key: str) -> List[str]:
        '''
            Returns list of names of immediate subdictionaries, in the order they were defined

            ## Example
                getImmediateSubDicts("Bodies") ->
                [ "Bodies.Earth", "Bodies.Capsule" ]
        '''
        keyLevel = getKeyLevel(key)

        subDictionaries = []
        for subKey in self.getSubKeys(key):
            if getKeyLevel(subKey) - keyLevel > 1:
                subDictKey = getParentKeyAtLevel(subKey, keyLevel+1)
                if subDictKey not in subDictionaries:
                    subDictionaries.append(subDictKey)

        return subDictionaries

    def _getClassBasedDefaultValue(self, key: str) -> Union[str, None]:
        '''
            Returns a class-based default value from defaultDict if it exists. Otherwise returns None

            Searches progressively shorter prefixes of the key for a 'class' entry:
                key = "Bodies.Capsule.InitialState.angularVelocity"
                Attempt1 = "Bodies.Capsule.InitialState.class" -> not present
                Attempt2 = "Bodies.Capsule.class" -> Vehicle -> look up 'Vehicle.InitialState.angularVelocity' in defaultDict
            The search terminates at the first prefix that has a class
        '''
        splitLevel = getKeyLevel(key) - 1

        while splitLevel >= 0:
            prefix, suffix = splitKeyAtLevel(key, splitLevel)
            classKey = prefix + ".class"

            if classKey in self.dict:
                classBasedDefaultKey = self.dict[classKey] + "." + suffix
                if classBasedDefaultKey not in self.defaultDict:
                    return None

                self.defaultValuesUsed.add(classBasedDefaultKey)
                self.unaccessedFields.discard(classKey)
                return self.defaultDict[classBasedDefaultKey]

            splitLevel -= 1

        return None

    #### Usage Reporting ####
    def printUnusedKeys(self):
        ''' Prints the keys in the present simulation definition that have not yet been accessed '''
        if len(self.unaccessedFields) > 0:
            print("\nWarning: The following keys were loaded from: {} but never accessed:".format(self.fileName))
            for key in sorted(self.unaccessedFields):
                if key not in self.dict:
                    continue
                print("{:<45}{}".format(key+":", self.dict[key]))
            print("")

    def printDefaultValuesUsed(self):
        ''' Prints the default values used since this SimDefinition was created '''
        if len(self.defaultValuesUsed):
            print("\nWarning: The following default values were used in this simulation:")
            for key in sorted(self.defaultValuesUsed):
                print("{:<45}{}".format(key+":", self.defaultDict[key]))
            print("\nIf this was not intended, override the default values by adding the above information to your simulation definition file.\n")

    def _resetUsedAndUnusedKeyTrackers(self):
        self.unaccessedFields = set(self.dict.keys())
        self.defaultValuesUsed = set()

    #### Utilities ####
    def __str__(self):
        result = "File: {}\n".format(self.fileName)
        for key, value in self.dict.items():
            result += "{}: {}\n".format(key, value)
        return result + "\n"

    def __eq__(self, simDef2):
        try:
            return self.dict == simDef2.dict
        except AttributeError:
            return False

################### Functions for dealing with string keys ########################
def _joinKey(parent: str, child: str) -> str:
    return child if parent == "" else parent + "." + child

def isSubKey(potentialParent: str, potentialChild: str) -> bool:
    """
        ## Example
        `isSubKey("Bodies", "Bodies.Earth.mass")` -> True
        `isSubKey("Bodies.Earth", "Bodies.EarthMoon.mass")` -> False
    """
    return len(potentialChild) > len(potentialParent) + 1 and potentialChild.startswith(potentialParent + ".")

def getKeyLevel(key: str) -> int:
    """
        Number of dots in the key
        ## Example
            getKeyLevel("Bodies") -> 0
            getKeyLevel("Bodies.Earth") -> 1
    """
    if len(key) == 0:
        return -1
    return key.count('.')

def getParentKeyAtLevel(key: str, desiredLevel: int) -> str:
    """
        >>> getParentKeyAtLevel('Bodies.Capsule.Aero.referenceArea', 0)
        'Bodies'
        >>> getParentKeyAtLevel('Bodies.Capsule.Aero.referenceArea', 2)
        'Bodies.Capsule.Aero'
    """
    return '.'.join(key.split('.')[:desiredLevel+1])

def getImmediateSubKey(parent, child):
    """
        Takes the parent key, adds one level of the child key:

        >>> getImmediateSubKey('Bodies', 'Bodies.Capsule.mass')
        'Bodies.Capsule'
    """
    if not isSubKey(parent, child):
        raise ValueError("{} is not a subkey of {}".format(child, parent))

    return getParentKeyAtLevel(child, getKeyLevel(parent)+1)

def splitKeyAtLevel(key: str, prefixLevel: int) -> Tuple[str, str]:
    '''
        0 <= level <= getKeyLevel(key)

        >>> splitKeyAtLevel("Bodies", 0)
        ('Bodies', '')
        >>> splitKeyAtLevel("Bodies.Capsule.mass", 1)
        ('Bodies.Capsule', 'mass')
    '''
    keyNames = key.split('.')
    return ".".join(keyNames[:prefixLevel+1]), ".".join(keyNames[prefixLevel+1:])

def getAbsoluteFilePath(relativePath: str) -> str:
    '''
        Takes a path defined relative to the SPINDLE repository (ex. 'SPINDLE/Examples/Simulations/Entry.spindle') and returns an absolute path for the current installation.
        Returns the original relativePath if the file is not found there
    '''
    pathToSpindleInstallation = Path(__file__).parent.parent.parent
    absolutePath = pathToSpindleInstallation / Path(relativePath)

    if absolutePath.exists():
        return str(absolutePath)

    print("WARNING: Unable to find {} relative to the SPINDLE installation location".format(relativePath))
    return relativePath
