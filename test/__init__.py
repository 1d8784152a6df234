'''
Contains all of the test code to make sure the code in `SPINDLE` is running properly.
Directory structure mirrors that of SPINDLE.

All test/test_XXXX modules contain unit testing code for SPINDLE/XXXX.
Test/Example simulation definitions are in SPINDLE/Examples/Simulations
Parser test definitions are in test/test_IO

'''