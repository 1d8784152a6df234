'''
Console capture (Logger), system info headers, and writing of propagation histories to tab-separated log files
'''
import os
import sys
from datetime import datetime
from platform import platform
from pprint import pformat

import pandas as pd

__all__ = [ "Logger", "removeLogger", "findNextAvailableNumberedFileName", "getSystemInfo", "getSimDefinitionAndDefaultValueDictsForOutput",
    "historyToDataFrame", "writeHistoryToFile", "readHistoryFromFile" ]

class Logger():
    '''
        Class intended to capture calls to print() and copy their contents to a list of strings, while still (optionally) printing them to the console

        Ex:
            logger = Logger(stringResultList)
            sys.stdout = logger

        Now anything passed into print() will be printed to the console and stored in stringResultList
    '''

    def __init__(self, stringListToCopyTo, continueWritingToTerminal=True):
        self.terminal = sys.__stdout__
        self.log = stringListToCopyTo
        self.continueWritingToTerminal = continueWritingToTerminal

    def write(self, msg):
        if self.continueWritingToTerminal:
            self.terminal.write(msg)
        self.log.append(msg)

    def flush(self):
        self.terminal.flush()

    def writeLine(self, msg=""):
        self.write(msg + "\n")

    def writeLogToFile(self, filePath, overwrite=False):
        if overwrite or not os.path.exists(filePath):
            with open(filePath, 'w+') as file:
                file.writelines(self.log)

def removeLogger():
    sys.stdout = sys.__stdout__

def findNextAvailableNumberedFileName(fileBaseName="simLog", extension=".txt"):
    '''
        If fileBaseName is simLog, returns the first of: simLog1, simLog2, simLog3, etc... that isn't already a file or directory.
        Returns a string of the form fileBaseName + Number + extension. Pass extension="" to find a directory name
    '''
    fileNumber = 1
    while os.path.exists(fileBaseName + str(fileNumber) + extension):
        fileNumber += 1

    return fileBaseName + str(fileNumber) + extension

def getSystemInfo(printToConsole=False):
    ''' Returns string array containing info about the SPINDLE version, machine type, date, etc... '''
    from SPINDLE import __version__

    result = [ "# SPINDLE, version: {}".format(__version__) ]
    result.append("# {}".format(datetime.now().strftime("%d/%m/%Y %H:%M:%S")))
    result.append("# OS: {}".format(platform()))
    result.append("# Python: {}".format(sys.version.split()[0]))

    if printToConsole:
        for line in result:
            print(line)

    return result

def getSimDefinitionAndDefaultValueDictsForOutput(simDefinition, printToConsole=True):
    ''' Returns a string array '''
    from SPINDLE.IO.simDefinition import defaultConfigValues

    print("# Using sim definition file: {}".format(simDefinition.fileName))

    stringResultArray = []
    stringResultArray.append("\n---- Start Sim Definition File ----\n")
    stringResultArray.append(str(simDefinition))
    stringResultArray.append("\n---- End Sim Definition File ----\n\n")

    stringResultArray.append("\n---- Start Default Value Dictionary ----\n")
    stringResultArray.append(pformat(defaultConfigValues))
    stringResultArray.append("\n---- End Default Value Dictionary ----\n\n")

    if printToConsole:
        for line in stringResultArray:
            print(line)

    return stringResultArray

#### Propagation histories ####
def historyToDataFrame(history, columnNames=None) -> pd.DataFrame:
    '''
        history: dict of { time: 1D array }, as recorded by `SPINDLE.SimulationRunners.DynamicsSimulator`
        columnNames: names of the array entries. Defaults to 'Value0', 'Value1', etc...

        Returns a DataFrame with a 'Time(s)' column followed by one column per array entry, sorted by time
    '''
    times = sorted(history.keys())
    values = [ history[t] for t in times ]

    dataFrame = pd.DataFrame(values, columns=columnNames)
    if columnNames is None:
        dataFrame.columns = [ "Value{}".format(i) for i in range(len(dataFrame.columns)) ]

    dataFrame.insert(0, "Time(s)", times)
    return dataFrame

def writeHistoryToFile(history, filePath, columnNames=None) -> str:
    ''' Writes a history as a tab-separated file, returns filePath '''
    historyToDataFrame(history, columnNames).to_csv(filePath, sep="\t", index=False, float_format="%.15g")
    print("Wrote: {}".format(filePath))
    return filePath

def readHistoryFromFile(filePath) -> pd.DataFrame:
    return pd.read_csv(filePath, sep="\t")
