import os
import tempfile
import unittest
from copy import deepcopy

from SPINDLE.IO import (SimDefinition, defaultConfigValues,
                        getAbsoluteFilePath, getImmediateSubKey,
                        getKeyLevel, getParentKeyAtLevel, isSubKey,
                        splitKeyAtLevel)
from test.testUtilities import captureOutput

testDirectory = os.path.dirname(os.path.abspath(__file__))

def getTestFilePath(fileName):
    return os.path.join(testDirectory, fileName)

testDefaultValues = dict(defaultConfigValues)
testDefaultValues.update({
    "testValue.testDefaultValue1":  "asdf",
    "testDefaultValue2":            "jkl;"
})

class TestSimDefinition(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.originalSimDef = SimDefinition(getTestFilePath("textFileDefinition.spindle"), silent=True, defaultDict=testDefaultValues)

    def setUp(self):
        self.simDef = deepcopy(self.originalSimDef)

    #### Parsing ####
    def test_ParseFile(self):
        self.assertEqual(self.simDef.getValue("Dictionary1.key1"), "value1")
        # Trailing comments are removed
        self.assertEqual(self.simDef.getValue("Dictionary1.key2"), "value2")
        self.assertEqual(self.simDef.getValue("Dictionary1.SubDictionary1.key3"), "value3")
        # Values can contain spaces
        self.assertEqual(self.simDef.getValue("Dictionary1.SubDictionary1.key4"), "value4 with spaces")
        self.assertEqual(self.simDef.getValue("Dictionary2.subD2.keyA"), "(1 2 3)")
        self.assertEqual(self.simDef.getValue("Bodies.Capsule.Aero.referenceArea"), "4")

    def test_DerivedDictionaries(self):
        # Inherited, with text replaced
        self.assertEqual(self.simDef.getValue("Bodies.Orbiter.class"), "Vehicle")
        self.assertEqual(self.simDef.getValue("Bodies.Orbiter.mass"), "250")
        self.assertEqual(self.simDef.getValue("Bodies.Orbiter.Aero.referenceArea"), "4")
        # Added in the derived dictionary
        self.assertEqual(self.simDef.getValue("Bodies.Orbiter.centralBody"), "Mars")
        # Removed keys fall back to class-based defaults
        self.assertNotIn("Bodies.Orbiter.Aero.forceCoefficients", self.simDef.dict)
        self.assertEqual(self.simDef.getValue("Bodies.Orbiter.Aero.forceCoefficients"), "(0 0 0)")

        # Keys defined in the derived dictionary override inherited values
        self.assertEqual(self.simDef.getValue("Bodies.Lander.mass"), "800")
        self.assertEqual(self.simDef.getValue("Bodies.Lander.Aero.forceCoefficients"), "(1.5 0 0.3)")

        # Parent is unchanged
        self.assertEqual(self.simDef.getValue("Bodies.Capsule.mass"), "5000")

    def test_ParsingErrors(self):
        with self.assertRaises(ValueError):
            SimDefinition(getTestFilePath("duplicateKeyError.spindle"), silent=True)

        with self.assertRaises(ValueError):
            SimDefinition(getTestFilePath("unclosedDictionaryError.spindle"), silent=True)

        with self.assertRaises(ValueError):
            SimDefinition()

    def test_DictionaryInitialization(self):
        simDef = SimDefinition(dictionary={ "SimControl.timeStep": "0.5" }, silent=True)
        self.assertEqual(simDef.getValue("SimControl.timeStep"), "0.5")
        self.assertIsNone(simDef.fileName)

    #### Default values ####
    def test_DefaultValues(self):
        self.assertEqual(self.simDef.getValue("testValue.testDefaultValue1"), "asdf")
        self.assertEqual(self.simDef.getValue("SimControl.Interpolation.type"), "Lagrange")
        self.assertIn("testValue.testDefaultValue1", self.simDef.defaultValuesUsed)

        with self.assertRaises(KeyError):
            self.simDef.getValue("Dictionary1.nonExistentKey")

    def test_ClassBasedDefaultValues(self):
        self.assertEqual(self.simDef.getValue("Bodies.Capsule.InitialState.angularVelocity"), "(0 0 0)")
        self.assertIn("Vehicle.InitialState.angularVelocity", self.simDef.defaultValuesUsed)

        # TestClass has no entries in the default dictionary
        with self.assertRaises(KeyError):
            self.simDef.getValue("Dictionary2.subD2.keyB")

        customDefaults = SimDefinition(getTestFilePath("textFileDefinition.spindle"), silent=True, defaultDict={ "TestClass.keyB": "7" })
        self.assertEqual(customDefaults.getValue("Dictionary2.subD2.keyB"), "7")
        with self.assertRaises(KeyError):
            customDefaults.getValue("testValue.testDefaultValue1")

    #### Modification ####
    def test_SetAndRemoveValues(self):
        self.simDef.setValue("Dictionary1.key1", "newValue")
        self.assertEqual(self.simDef.getValue("Dictionary1.key1"), "newValue")

        self.simDef.setValue("Dictionary3.key5", "value5")
        self.assertEqual(self.simDef.getValue("Dictionary3.key5"), "value5")

        self.simDef.setIfAbsent("Dictionary3.key5", "ignored")
        self.simDef.setIfAbsent("Dictionary3.key6", "value6")
        self.assertEqual(self.simDef.getValue("Dictionary3.key5"), "value5")
        self.assertEqual(self.simDef.getValue("Dictionary3.key6"), "value6")

        self.assertEqual(self.simDef.removeKey("Dictionary3.key5"), "value5")
        with self.assertRaises(KeyError):
            self.simDef.getValue("Dictionary3.key5")

        with captureOutput() as (out, err):
            self.assertIsNone(self.simDef.removeKey("Dictionary3.key5"))
        self.assertIn("Warning", out.getvalue())

    def test_WriteToFile(self):
        with tempfile.TemporaryDirectory() as directory:
            filePath = os.path.join(directory, "rewritten.spindle")
            self.simDef.writeToFile(filePath)
            rewrittenSimDef = SimDefinition(filePath, silent=True)

        self.assertEqual(rewrittenSimDef, self.simDef)
        self.assertEqual(rewrittenSimDef.getValue("Dictionary1.SubDictionary1.key4"), "value4 with spaces")
        self.assertNotEqual(self.simDef, "notASimDefinition")

    #### Introspection ####
    def test_FindKeysContaining(self):
        self.assertEqual(self.simDef.findKeysContaining([ "class" ]),
            [ "Dictionary2.subD2.class", "Bodies.Capsule.class", "Bodies.Orbiter.class", "Bodies.Lander.class" ])
        self.assertEqual(self.simDef.findKeysContaining([ "Orbiter", "Aero" ]), [ "Bodies.Orbiter.Aero.referenceArea" ])
        self.assertIsNone(self.simDef.findKeysContaining([ "notAKey" ]))

    def test_SubKeysAndDicts(self):
        self.assertEqual(self.simDef.getSubKeys("Dictionary1"),
            [ "Dictionary1.key1", "Dictionary1.key2", "Dictionary1.SubDictionary1.key3", "Dictionary1.SubDictionary1.key4" ])
        self.assertEqual(self.simDef.getImmediateSubKeys("Dictionary1"), [ "Dictionary1.key1", "Dictionary1.key2" ])
        self.assertEqual(self.simDef.getImmediateSubKeys("Bodies.Capsule"), [ "Bodies.Capsule.class", "Bodies.Capsule.mass" ])

        self.assertEqual(self.simDef.getImmediateSubDicts("Bodies"), [ "Bodies.Capsule", "Bodies.Orbiter", "Bodies.Lander" ])
        self.assertEqual(self.simDef.getImmediateSubDicts("Dictionary1"), [ "Dictionary1.SubDictionary1" ])
        self.assertEqual(self.simDef.getImmediateSubDicts("Dictionary1.SubDictionary1"), [])

    def test_UsageReporting(self):
        self.simDef.getValue("Dictionary1.key1")
        self.simDef.getValue("testDefaultValue2")

        with captureOutput() as (out, err):
            self.simDef.printUnusedKeys()
            self.simDef.printDefaultValuesUsed()
        output = out.getvalue()

        self.assertIn("Dictionary1.key2", output)
        self.assertNotIn("Dictionary1.key1:", output)
        self.assertIn("testDefaultValue2", output)

    def test_RemovedKeysAreNotReportedAsUnused(self):
        self.simDef.removeKey("Dictionary1.key2")
        self.assertNotIn("Dictionary1.key2", self.simDef.unaccessedFields)

        with captureOutput() as (out, err):
            self.simDef.printUnusedKeys()
        output = out.getvalue()

        self.assertNotIn("Dictionary1.key2", output)
        self.assertIn("Dictionary1.key1", output)

        # Keys tracked before being removed some other way are skipped
        self.simDef.unaccessedFields.add("Dictionary1.notAKey")
        with captureOutput() as (out, err):
            self.simDef.printUnusedKeys()
        self.assertNotIn("Dictionary1.notAKey", out.getvalue())

    def test_ProductionDefaultsHaveNoTestEntries(self):
        self.assertFalse(any("testDefaultValue" in key for key in defaultConfigValues))

    #### Key functions ####
    def test_KeyFunctions(self):
        self.assertTrue(isSubKey("Bodies", "Bodies.Earth.mass"))
        self.assertFalse(isSubKey("Bodies.Earth", "Bodies.EarthMoon.mass"))
        self.assertFalse(isSubKey("Bodies.Earth", "Bodies.Earth"))

        self.assertEqual(getKeyLevel(""), -1)
        self.assertEqual(getKeyLevel("Bodies"), 0)
        self.assertEqual(getKeyLevel("Bodies.Capsule.Aero.referenceArea"), 3)

        self.assertEqual(getParentKeyAtLevel("Bodies.Capsule.Aero.referenceArea", 0), "Bodies")
        self.assertEqual(getParentKeyAtLevel("Bodies.Capsule.Aero.referenceArea", 2), "Bodies.Capsule.Aero")

        self.assertEqual(getImmediateSubKey("Bodies", "Bodies.Capsule.mass"), "Bodies.Capsule")
        with self.assertRaises(ValueError):
            getImmediateSubKey("Bodies.Earth", "Bodies.Capsule.mass")

        self.assertEqual(splitKeyAtLevel("Bodies", 0), ("Bodies", ""))
        self.assertEqual(splitKeyAtLevel("Bodies.Capsule.mass", 1), ("Bodies.Capsule", "mass"))

    def test_GetAbsoluteFilePath(self):
        absolutePath = getAbsoluteFilePath("SPINDLE/Examples/Simulations/CapsuleEntry.spindle")
        self.assertTrue(os.path.isabs(absolutePath))
        self.assertTrue(os.path.exists(absolutePath))

        with captureOutput():
            self.assertEqual(getAbsoluteFilePath("notAFolder/notAFile.spindle"), "notAFolder/notAFile.spindle")

#If this file is run by itself, run the tests above
if __name__ == '__main__':
    unittest.main()
