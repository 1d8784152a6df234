'''
Script to run simulations from the command line
If SPINDLE has been installed with pip, this script is accessible through the 'spindle' command
'''

import argparse
import os
import sys
import time
from pathlib import Path

import SPINDLE.IO.Logging as Logging
from SPINDLE.IO import SimDefinition
from SPINDLE.SimulationRunners import Simulation


def buildParser() -> argparse.ArgumentParser:
    ''' Builds the command-line argument parser using argparse '''
    parser = argparse.ArgumentParser(formatter_class=argparse.RawTextHelpFormatter, description="""
    Run individual SPINDLE simulations.
    Expects simulations to be defined by simulation definition files like those in ./SPINDLE/Examples/Simulations
    """)

    parser.add_argument(
        "--silent",
        action='store_true',
        help="If present, does not output to console"
    )
    parser.add_argument(
        "--noProgress",
        action='store_true',
        help="If present, does not show a progress bar"
    )
    parser.add_argument(
        "simDefinitionFile",
        nargs='?',
        default="TorqueFreeSpin.spindle",
        help="Path to a simulation definition (.spindle) file, or the name of one of the example cases"
    )

    return parser

def findSimDefinitionFile(providedPath) -> str:
    # It is already a path, just return it
    if os.path.isfile(providedPath):
        return providedPath

    # Also check the example cases
    exampleLocation = Path(__file__).parent / "Examples" / "Simulations"

    possibleRelativePaths = [ providedPath ]
    if not providedPath.endswith(".spindle"):
        # If it's just the case name (ex: 'CapsuleEntry') try also adding the file extension
        possibleRelativePaths.append(providedPath + ".spindle")

    for path in possibleRelativePaths:
        absPath = exampleLocation / path
        if absPath.is_file():
            return str(absPath)

    raise FileNotFoundError("Unable to locate simulation definition file: {}. Checked whether the path was relative to the current command line location or one of the example cases. To be sure that your file will be found, try using an absolute path.".format(providedPath))

def main(argv=None) -> int:
    '''
        Main function to run a SPINDLE simulation.
        Expects to be called from the command line, usually using the `spindle` command

        For testing purposes, can also pass a list of command line arguments into the argv parameter
    '''
    startTime = time.time()

    # Parse command line call, check for errors
    parser = buildParser()
    args = parser.parse_args(argv)

    # Load simulation definition file
    try:
        simDefPath = findSimDefinitionFile(args.simDefinitionFile)
    except FileNotFoundError as e:
        print("ERROR: {}".format(e))
        return 1

    simDef = SimDefinition(simDefPath, silent=args.silent)

    sim = Simulation(simDefinition=simDef, silent=args.silent, showProgress=not args.noProgress)
    sim.run()

    Logging.removeLogger()

    if not args.silent:
        print("Run time: {:1.2f} seconds".format(time.time() - startTime))
        print("Exiting")

    return 0

if __name__ == "__main__":
    sys.exit(main())
