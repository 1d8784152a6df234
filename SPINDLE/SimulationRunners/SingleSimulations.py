import os
import sys
import traceback

import numpy as np

from SPINDLE.ENV import (ConstantEphemeris, ConstantRotationalEphemeris,
                         NamedBodyMap, createBodyMap, sphericalToCartesian)
from SPINDLE.IO import Logging, SimDefinition, SubDictReader
from SPINDLE.Models import (accelerationModelFactory,
                            aerodynamicCoefficientsFactory, torqueModelFactory)
from SPINDLE.Motion import (IntegratorSettings, Quaternion,
                            composeRotationalState,
                            getAirspeedBasedAerodynamicToBodyFrameTransformationMatrix,
                            getLocalVerticalToRotatingPlanetocentricFrameTransformationMatrix,
                            getTrajectoryToLocalVerticalFrameTransformationMatrix,
                            getAerodynamicToTrajectoryFrameTransformationMatrix)
from SPINDLE.SimulationRunners.dynamicsSimulator import DynamicsSimulator
from SPINDLE.SimulationRunners.propagatorSettings import (
    CustomTerminationSettings, DependentVariableSettings,
    MultiTypePropagatorSettings, RotationalPropagatorSettings,
    TimeTerminationSettings, TranslationalPropagatorSettings)

__all__ = [ "Simulation", "runSimulation", "loadSimDefinition", "computeInitialStateFromAerodynamicAngles" ]

def loadSimDefinition(simDefinitionFilePath=None, simDefinition=None, silent=False):
    ''' Loads a simulation definition file into a `SPINDLE.IO.SimDefinition` object - accepts either a file path or a `SPINDLE.IO.SimDefinition` object as input '''
    if simDefinition is None and simDefinitionFilePath is not None:
        return SimDefinition(simDefinitionFilePath, silent=silent) # Parse simulation definition file

    elif simDefinition is not None:
        return simDefinition # Use the SimDefinition that was passed in

    else:
        raise ValueError(""" Insufficient information to initialize a Simulation.
            Please provide either simDefinitionFilePath (string) or simDefinition (SimDefinition), which has been created from the desired Sim Definition file.
            If both are provided, the SimDefinition is used.""")

def computeInitialStateFromAerodynamicAngles(centralBody, altitude, latitude, longitude, speed, flightPathAngle, headingAngle,
        angleOfAttack=0.0, sideslipAngle=0.0, bankAngle=0.0):
    '''
        Computes a vehicle's initial state from its position and velocity relative to the rotating central body, and its aerodynamic angles.
        The central body's current rotational state must already be set (`SPINDLE.ENV.NamedBodyMap.updateEnvironment`)

        Returns:
            relativeTranslationalState: [ x, y, z, vx, vy, vz ] relative to the central body, inertial orientation
            orientation:                `SPINDLE.Motion.Quaternion` rotating from the vehicle's body frame to the inertial frame
    '''
    rotationToInertialFrame = centralBody.getCurrentRotationToGlobalFrame()
    localVerticalToPlanetocentric = getLocalVerticalToRotatingPlanetocentricFrameTransformationMatrix(longitude, latitude)

    planetocentricPosition = sphericalToCartesian(centralBody.shapeRadius + altitude, latitude, longitude)

    # Ground-relative velocity in the local vertical frame: X north, Y east, Z down
    localVerticalVelocity = speed * np.array([
        np.cos(flightPathAngle) * np.cos(headingAngle),
        np.cos(flightPathAngle) * np.sin(headingAngle),
        -np.sin(flightPathAngle)
    ])
    planetocentricVelocity = localVerticalToPlanetocentric @ localVerticalVelocity

    inertialPosition = rotationToInertialFrame @ planetocentricPosition
    centralBodyAngularVelocity = centralBody.getCurrentAngularVelocityInGlobalFrame()
    inertialVelocity = rotationToInertialFrame @ planetocentricVelocity + np.cross(centralBodyAngularVelocity, inertialPosition)

    bodyToInertial = rotationToInertialFrame @ localVerticalToPlanetocentric \
        @ getTrajectoryToLocalVerticalFrameTransformationMatrix(headingAngle, flightPathAngle) \
        @ getAerodynamicToTrajectoryFrameTransformationMatrix(bankAngle) \
        @ getAirspeedBasedAerodynamicToBodyFrameTransformationMatrix(angleOfAttack, sideslipAngle).T

    return np.concatenate((inertialPosition, inertialVelocity)), Quaternion.fromRotationMatrix(bodyToInertial)

class Simulation():

    def __init__(self, simDefinitionFilePath=None, simDefinition=None, silent=False, showProgress=True):
        '''
            Inputs:

                * simDefinitionFilePath:  (string) path to simulation definition file
                * simDefinition:          (`SPINDLE.IO.SimDefinition`) object that's already loaded and parsed the desired sim definition file
                * silent:                 (bool) toggles optional outputs to the console
                * showProgress:           (bool) toggles the tqdm progress bar
        '''
        self.simDefinition = loadSimDefinition(simDefinitionFilePath, simDefinition, silent)
        ''' Instance of `SPINDLE.IO.SimDefinition`. Defines the current simulation '''

        self.silent = silent
        self.showProgress = showProgress

        self.loggingLevel = int(self.simDefinition.getValue("SimControl.loggingLevel"))
        self.startTime = float(self.simDefinition.getValue("SimControl.startTime"))

        self.bodyMap = None # type: NamedBodyMap
        ''' Set in `Simulation.createDynamicsSimulator` '''
        self.dynamicsSimulator = None # type: DynamicsSimulator
        self.consoleOutputLog = []

    def run(self):
        '''
            Runs the simulation defined by self.simDefinition

            Returns:
                * stateHistory:                 (dict[float, np.ndarray]) propagated states by time
                * dependentVariableHistory:     (dict[float, np.ndarray]) dependent variables by time
                * logFilePaths:                 (list[string]) paths to all log files created by this simulation, None if logging is disabled
        '''
        self._setUpConsoleLogging()

        try:
            simulator = self.createDynamicsSimulator()
            if self.showProgress and not self.silent:
                try:
                    self.logger.continueWritingToTerminal = False # Keep the progress bar on a single line
                except AttributeError:
                    pass # Logging not set up for this sim
            simulator.run()
        except Exception:
            self._handleSimulationCrash()
            raise
        finally:
            try:
                self.logger.continueWritingToTerminal = not self.silent
            except AttributeError:
                pass # Logging not set up for this sim

        print("Simulation Complete")
        try:
            logFilePaths = self._postProcess(self.simDefinition)
        finally:
            Logging.removeLogger()

        return simulator.stateHistory, simulator.dependentVariableHistory, logFilePaths

    #### Pre-sim ####
    def _getVehicleReaders(self):
        readers = []
        for bodyPath in self.simDefinition.getImmediateSubDicts("Bodies"):
            reader = SubDictReader(bodyPath, self.simDefinition)
            if reader.getString("class") == "Vehicle":
                readers.append(reader)

        return readers

    def createBodyMap(self) -> NamedBodyMap:
        ''' Creates all bodies and sets the central bodies' states at the start time. Vehicles get their aerodynamic coefficients if they have an 'Aero' dictionary '''
        bodyMap = createBodyMap(self.simDefinition)
        bodyMap.updateEnvironment(self.startTime)

        for vehicleReader in self._getVehicleReaders():
            if len(vehicleReader.getSubKeys(vehicleReader.simDefDictPathToReadFrom + ".Aero")) > 0:
                bodyMap[vehicleReader.getDictName()].aerodynamicCoefficients = aerodynamicCoefficientsFactory(vehicleReader.getSubReader("Aero"))

        return bodyMap

    def getInitialStates(self, vehicleReader, bodyMap):
        '''
            Reads a vehicle's 'InitialState' dictionary. Position/velocity can be provided either:
                As 'position' and 'velocity' vectors (inertial orientation, relative to the central body), or
                As altitude, latitude, longitude, speed, flightPathAngle and headingAngle (relative to the rotating central body)
            Orientation can be provided either as an 'orientation' quaternion (w x y z, body -> inertial), or from the angleOfAttack, sideslipAngle and bankAngle

            Returns relativeTranslationalState, rotationalState
        '''
        initStateReader = vehicleReader.getSubReader("InitialState")
        centralBody = bodyMap[vehicleReader.getString("centralBody")]

        position = initStateReader.tryGetVector("position")
        if position is not None:
            relativeState = np.concatenate((position, initStateReader.getVector("velocity")))
            orientationFromAngles = None
        else:
            relativeState, orientationFromAngles = computeInitialStateFromAerodynamicAngles(
                centralBody,
                altitude=initStateReader.getFloat("altitude"),
                latitude=initStateReader.getFloat("latitude"),
                longitude=initStateReader.getFloat("longitude"),
                speed=initStateReader.getFloat("speed"),
                flightPathAngle=initStateReader.getFloat("flightPathAngle"),
                headingAngle=initStateReader.getFloat("headingAngle"),
                angleOfAttack=initStateReader.getFloat("angleOfAttack"),
                sideslipAngle=initStateReader.getFloat("sideslipAngle"),
                bankAngle=initStateReader.getFloat("bankAngle")
            )

        orientationComponents = initStateReader.tryGetVector("orientation")
        if orientationComponents is not None:
            orientation = Quaternion(components=orientationComponents).normalize()
        elif orientationFromAngles is not None:
            orientation = orientationFromAngles
        else:
            orientation = Quaternion(1, 0, 0, 0)

        rotationalState = composeRotationalState(orientation, initStateReader.getVector("angularVelocity"))
        return relativeState, rotationalState

    def _createModels(self, vehicleReader, modelsDictName, factory, centralBodyName):
        models = {}
        for modelPath in vehicleReader.getImmediateSubDicts(vehicleReader.simDefDictPathToReadFrom + "." + modelsDictName):
            modelReader = SubDictReader(modelPath, self.simDefinition)
            models[modelReader.getDictName()] = factory(modelReader, vehicleReader.getDictName(), centralBodyName)

        return models

    def createPropagatorSettings(self, bodyMap):
        ''' Creates one translational and one rotational propagator block, containing all vehicles propagated that way '''
        translational = { "centralBodies": [], "bodies": [], "initialStates": [], "accelerationModels": {} }
        rotational = { "bodies": [], "initialStates": [], "torqueModels": {} }

        for vehicleReader in self._getVehicleReaders():
            name = vehicleReader.getDictName()
            centralBodyName = vehicleReader.getString("centralBody")
            centralBody = bodyMap[centralBodyName]
            relativeState, rotationalState = self.getInitialStates(vehicleReader, bodyMap)

            if vehicleReader.getBool("propagateTranslation"):
                translational["centralBodies"].append(centralBodyName)
                translational["bodies"].append(name)
                translational["initialStates"].append(relativeState)
                translational["accelerationModels"][name] = self._createModels(vehicleReader, "Accelerations", accelerationModelFactory, centralBodyName)
            else:
                bodyMap[name].setEphemeris(ConstantEphemeris(relativeState + centralBody.currentTranslationalState))

            if vehicleReader.getBool("propagateRotation"):
                rotational["bodies"].append(name)
                rotational["initialStates"].append(rotationalState)
                rotational["torqueModels"][name] = self._createModels(vehicleReader, "Torques", torqueModelFactory, centralBodyName)
            else:
                bodyMap[name].setRotationalEphemeris(ConstantRotationalEphemeris(rotationalState[:4]))

        blocks = []
        if len(translational["bodies"]) > 0:
            blocks.append(TranslationalPropagatorSettings(**translational))
        if len(rotational["bodies"]) > 0:
            blocks.append(RotationalPropagatorSettings(**rotational))

        if len(blocks) == 0:
            raise ValueError("No propagated vehicles found in {}. Add a 'class Vehicle' body with propagateTranslation or propagateRotation set to true".format(self.simDefinition.fileName))

        return MultiTypePropagatorSettings(blocks)

    def createTerminationSettings(self, bodyMap, vehicleName, centralBodyName):
        endCondition = self.simDefinition.getValue("SimControl.EndCondition")
        conditionValue = float(self.simDefinition.getValue("SimControl.EndConditionValue"))

        if endCondition == "Time":
            return TimeTerminationSettings(conditionValue)

        elif endCondition == "Altitude":
            startsBelow = bodyMap.getAltitude(vehicleName, centralBodyName) < conditionValue

            def isPastAltitude(time, state):
                altitude = bodyMap.getAltitude(vehicleName, centralBodyName)
                return altitude >= conditionValue if startsBelow else altitude <= conditionValue

            return CustomTerminationSettings(isPastAltitude)

        else:
            raise ValueError("End condition: {} not implemented. Try 'Time' or 'Altitude'".format(endCondition))

    def createDependentVariables(self):
        '''
            Parses SimControl.dependentVariables: space-separated entries of the form bodyName.variableType[.torqueModelName]
                Ex: 'Capsule.aerodynamicAngles Capsule.totalTorque Capsule.singleTorque.Aero'
        '''
        dependentVariablesString = self.simDefinition.getValue("SimControl.dependentVariables")
        if dependentVariablesString.strip() in ("None", ""):
            return []

        dependentVariables = []
        for entry in dependentVariablesString.split():
            parts = entry.split(".")
            if len(parts) not in (2, 3):
                raise ValueError("Dependent variable: {} should have the form bodyName.variableType or bodyName.singleTorque.modelName".format(entry))

            bodyName, variableType = parts[0], parts[1]
            modelName = parts[2] if len(parts) == 3 else None
            centralBodyName = SubDictReader("Bodies." + bodyName, self.simDefinition).getString("centralBody")
            dependentVariables.append(DependentVariableSettings(variableType, bodyName, centralBodyName, modelName))

        return dependentVariables

    def createDynamicsSimulator(self) -> DynamicsSimulator:
        self.bodyMap = self.createBodyMap()
        propagatorSettings = self.createPropagatorSettings(self.bodyMap)
        # Termination settings may depend on the initial states of the propagated bodies
        propagatorSettings.setStatesOnBodies(propagatorSettings.getInitialState(), self.bodyMap, self.startTime)

        firstVehicleReader = self._getVehicleReaders()[0]
        terminationSettings = self.createTerminationSettings(self.bodyMap, firstVehicleReader.getDictName(), firstVehicleReader.getString("centralBody"))

        interpolationReader = SubDictReader("SimControl.Interpolation", self.simDefinition)
        self.dynamicsSimulator = DynamicsSimulator(
            self.bodyMap,
            IntegratorSettings.fromSimDefinition(self.simDefinition),
            propagatorSettings,
            terminationSettings,
            dependentVariables=self.createDependentVariables(),
            initialTime=self.startTime,
            silent=self.silent,
            showProgress=self.showProgress,
            interpolatorType=interpolationReader.getString("type"),
            interpolationOrder=interpolationReader.getInt("order"),
            boundaryHandling=interpolationReader.getString("boundaryHandling")
        )
        return self.dynamicsSimulator

    def _setUpConsoleLogging(self):
        if self.loggingLevel > 0:
            # Set up logging so that the output of any print calls after this point is captured in consoleOutputLog
            self.consoleOutputLog = []
            self.logger = Logging.Logger(self.consoleOutputLog, continueWritingToTerminal=not self.silent)
            sys.stdout = self.logger

            # Output system info to console and to log
            Logging.getSystemInfo(printToConsole=True)
            # Output sim definition file and default value dict to the log only
            self.consoleOutputLog += Logging.getSimDefinitionAndDefaultValueDictsForOutput(simDefinition=self.simDefinition, printToConsole=False)

            print("Starting Simulation:")

        elif self.silent:
            # No intention of writing things to a log file, just prevent them from being printed to the terminal
            self.logger = Logging.Logger([], continueWritingToTerminal=False)
            sys.stdout = self.logger

    def _handleSimulationCrash(self):
        ''' Prints diagnostics and the stack trace. The caller re-raises the exception '''
        print("ERROR: Simulation Crashed, Aborting")
        if self.dynamicsSimulator is not None and len(self.dynamicsSimulator.stateHistory) > 0:
            print("Last accepted time: {}".format(next(reversed(self.dynamicsSimulator.stateHistory))))

        print(traceback.format_exc())
        Logging.removeLogger()

    #### Post-sim ####
    def _postProcess(self, simDefinition):
        simDefinition.printDefaultValuesUsed() # Print these out before logging, to include them in the log
        logFilePaths = self._logSimulationResults(simDefinition)
        simDefinition.printUnusedKeys()

        return logFilePaths

    def _logSimulationResults(self, simDefinition):
        ''' Writes the state and dependent variable histories, and the console output, to a new numbered results folder '''
        logFilePaths = None
        if self.loggingLevel > 0:
            logFilePaths = []

            # Create a new folder for the results of the current simulation
            fileName = simDefinition.fileName if simDefinition.fileName is not None else "Simulation.spindle"
            periodIndex = fileName.rfind('.')
            resultsFolderBaseName = (fileName[:periodIndex] if periodIndex > 0 else fileName) + "_Run"

            def tryCreateResultsFolder(resultsFolderBaseName):
                resultsFolderName = Logging.findNextAvailableNumberedFileName(fileBaseName=resultsFolderBaseName, extension="")

                try:
                    os.mkdir(resultsFolderName)
                    return resultsFolderName

                except FileExistsError:
                    # Another process created the same results folder between the two calls above
                    return ""

            createdResultsFolder = tryCreateResultsFolder(resultsFolderBaseName)
            iterations = 0
            while createdResultsFolder == "" and iterations < 50:
                createdResultsFolder = tryCreateResultsFolder(resultsFolderBaseName)
                iterations += 1

            if createdResultsFolder == "":
                raise ValueError("Repeated error (50x): unable to create a results folder: {}.".format(resultsFolderBaseName))

            simulator = self.dynamicsSimulator
            statePath = os.path.join(createdResultsFolder, "stateHistory.txt")
            logFilePaths.append(Logging.writeHistoryToFile(simulator.stateHistory, statePath, simulator.getStateColumnNames()))

            if len(simulator.dependentVariableHistory) > 0:
                dependentVariablePath = os.path.join(createdResultsFolder, "dependentVariableHistory.txt")
                logFilePaths.append(Logging.writeHistoryToFile(simulator.dependentVariableHistory, dependentVariablePath, simulator.getDependentVariableColumnNames()))

            # Output console output
            consoleOutputPath = os.path.join(createdResultsFolder, "consoleOutput.txt")
            print("Writing log file: {}".format(consoleOutputPath))
            with open(consoleOutputPath, 'w+') as file:
                file.writelines(self.consoleOutputLog)
            logFilePaths.append(consoleOutputPath)

        return logFilePaths

def runSimulation(simDefinitionFilePath=None, simDefinition=None, silent=False, showProgress=True):
    sim = Simulation(simDefinitionFilePath, simDefinition, silent, showProgress)
    return sim.run()
