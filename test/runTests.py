import argparse
import os
import sys
import unittest

#### Running Tests ####
def _setupPath():
    # Make sure we're running from the main SPINDLE directory
    cwd = os.getcwd()
    if os.path.basename(cwd) == "test":
        os.chdir("..")

    # Make sure main directory is in path
    cwd = os.getcwd()
    if cwd in sys.path:
        sys.path.remove(cwd)
    sys.path.insert(0, cwd)

def _stringMatch(string, exclude=None, include=None) -> bool:
    if (exclude is None) == (include is None):
        raise ValueError("Exactly one of include: {} and exclude: {} must not be None".format(include, exclude))

    if "test_" not in string:
        return False

    if exclude is not None:
        # Check if name should be excluded
        return not any(excludeStr in string for excludeStr in exclude)

    # Check if name should be included
    return any(includeStr in string for includeStr in include)

def runUnitTests(exclude=None, include=None):
    _setupPath()

    #### Find tests ####
    suite = unittest.TestSuite()

    if exclude is None and include is None:
        # Run all tests
        suite.addTests(unittest.defaultTestLoader.discover(start_dir="test", top_level_dir="."))

    else:
        testDirContents = [ ("test/" + x) for x in sorted(os.listdir("test")) ]
        for item in testDirContents:
            if _stringMatch(item, exclude, include):
                # If the item name matches current include/exclude rules, include it

                if os.path.isdir(item):
                    # Include from folder/package
                    suite.addTests(unittest.defaultTestLoader.discover(start_dir=item, top_level_dir="."))

                elif item.endswith(".py"):
                    # Include from file/module, ex: "test/test_Main.py" -> "test.test_Main"
                    suite.addTests(unittest.defaultTestLoader.loadTestsFromName(item.replace("/", ".")[:-3]))

    #### Run Tests ####
    runner = unittest.TextTestRunner(verbosity=3) # verbosity=3 same as running unittest -v
    return runner.run(suite)

def _runUnitTests_byLevelPresets(level):
    '''
        Level 1 Runs just the quickest tests (Excludes tests in test_SimulationRunners, test_Main and test_IO)
        Level 2 Excludes tests in test_SimulationRunners and test_Main
        Level 3 Runs all unittest test cases
    '''
    if level == 0:
        return None
    elif level == 1:
        return runUnitTests(exclude=["SimulationRunners", "Main", "IO"])
    elif level == 2:
        return runUnitTests(exclude=["SimulationRunners", "Main"])
    else:
        return runUnitTests()

#### Command line interface ####
def _build_Parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(formatter_class=argparse.RawTextHelpFormatter, description="""
    Convenience script for running subsets of the unittest test suite

    Examples:
        {startGray}# Key words:{endColor}
        python runTests.py all                      {startGray}# All unit tests{endColor}

        {startGray}# Inclusive run:{endColor}
        python runTests.py Motion ENV IO            {startGray}# Run unit tests from test/test_Motion, test/test_ENV, and test/test_IO{endColor}

        {startGray}# Exclusive run:{endColor}
        python runTests.py --excluding Motion IO    {startGray}# Run all unit tests EXCEPT those from test/test_Motion and test/test_IO{endColor}

        {startGray}# Run by level presets:{endColor}
        python runTests.py 1                        {startGray}# Exclude SimulationRunners, Main, and IO{endColor}
        python runTests.py 2                        {startGray}# Exclude SimulationRunners and Main{endColor}
        python runTests.py 3                        {startGray}# All unit tests{endColor}
    """.format(startGray="\033[90m", endColor="\033[0m")) # https://en.wikipedia.org/wiki/ANSI_escape_code#Escape_sequences

    mutexGroup = parser.add_mutually_exclusive_group()
    mutexGroup.add_argument(
        "--excluding",
        nargs='*',
        default=[],
        help="Exclude tests in packages with these parameter(s) in their names"
    )
    mutexGroup.add_argument(
        "Including",
        nargs='*',
        default=[],
        help="Only run tests from packages with these parameter(s) in their names"
    )

    return parser

def main(argv=None) -> int:
    parser = _build_Parser()
    args = parser.parse_args(argv)

    unittestResult = None

    if len(args.Including) == 1:
        if args.Including[0].lower() == "all":
            args.Including = [ "3" ]

        try:
            # Try to run tests by level preset
            unittestResult = _runUnitTests_byLevelPresets(int(args.Including[0]))
        except ValueError:
            pass

    if unittestResult is None and args.Including != [ "0" ]:
        if len(args.excluding) > 0:
            unittestResult = runUnitTests(exclude=args.excluding)
        elif len(args.Including) > 0:
            unittestResult = runUnitTests(include=args.Including)
        else:
            unittestResult = runUnitTests()

    if unittestResult is not None and len(unittestResult.failures) + len(unittestResult.errors) > 0:
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
