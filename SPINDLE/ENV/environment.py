''' Body entities and the named body map that ties together all physical properties and models queried during propagation '''

import numpy as np

from SPINDLE.ENV.AtmosphereModelling import atmosphericModelFactory
from SPINDLE.ENV.EarthModelling import cartesianToSpherical, gravityModelFactory
from SPINDLE.ENV.Ephemerides import (ConstantEphemeris, Ephemeris,
                                     RotationalEphemeris,
                                     rotationalEphemerisFactory)
from SPINDLE.Motion import Inertia, Quaternion, composeRotationalState

__all__ = [ "Body", "NamedBodyMap", "bodyFactory", "createBodyMap" ]

class Body():
    '''
        Owns a body's physical properties (mass, inertia), its models (gravity, atmosphere, aerodynamic coefficients) and its ephemerides.

        During propagation, the current rotational/translational states are set directly by `SPINDLE.SimulationRunners.DynamicsSimulator`
        for propagated bodies, and from the ephemerides (`NamedBodyMap.updateEnvironment`) for all others.
        Translational states are Cartesian [ x, y, z, vx, vy, vz ] in the global inertial frame.
    '''
    def __init__(self, name, mass=0.0, inertia=None, rotationalEphemeris: RotationalEphemeris=None, ephemeris: Ephemeris=None,
            gravityModel=None, atmosphereModel=None, aerodynamicCoefficients=None, shapeRadius=0.0):
        '''
            inertia: `SPINDLE.Motion.Inertia`, or a 3-vector of principal moments / 3x3 tensor (combined with mass)
        '''
        self.name = name
        self.mass = mass
        self.inertia = None
        if inertia is not None:
            self.setInertia(inertia)

        self.rotationalEphemeris = rotationalEphemeris
        self.ephemeris = ephemeris
        self.gravityModel = gravityModel
        self.atmosphereModel = atmosphereModel
        self.aerodynamicCoefficients = aerodynamicCoefficients
        self.shapeRadius = shapeRadius

        self.currentTime = None
        self.currentRotationalState = np.array([ 1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0 ])
        self.currentTranslationalState = np.zeros(6)

    #### Properties ####
    def setInertia(self, inertia):
        if not isinstance(inertia, Inertia):
            inertia = Inertia(inertia, self.mass)
        self.inertia = inertia

    def getInertiaTensor(self) -> np.ndarray:
        if self.inertia is None:
            raise ValueError("Body {} has no inertia tensor".format(self.name))
        return self.inertia.tensor

    def setRotationalEphemeris(self, rotationalEphemeris: RotationalEphemeris):
        ''' Replaces (and discards) any previous rotational ephemeris '''
        self.rotationalEphemeris = rotationalEphemeris

    def getRotationalEphemeris(self) -> RotationalEphemeris:
        return self.rotationalEphemeris

    def setEphemeris(self, ephemeris: Ephemeris):
        ''' Replaces (and discards) any previous translational ephemeris '''
        self.ephemeris = ephemeris

    def getEphemeris(self) -> Ephemeris:
        return self.ephemeris

    #### Current state ####
    def setCurrentRotationalState(self, rotationalState, time=None):
        self.currentRotationalState = np.asarray(rotationalState, dtype=np.float64)
        if time is not None:
            self.currentTime = time

    def setCurrentTranslationalState(self, translationalState, time=None):
        self.currentTranslationalState = np.asarray(translationalState, dtype=np.float64)
        if time is not None:
            self.currentTime = time

    def updateRotationalStateFromEphemeris(self, time):
        if self.rotationalEphemeris is not None:
            orientation = self.rotationalEphemeris.getRotationToBaseFrameQuaternion(time)
            angularVelocity = self.rotationalEphemeris.getRotationalVelocityVectorInTargetFrame(time)
            self.setCurrentRotationalState(composeRotationalState(orientation, angularVelocity), time)

    def updateTranslationalStateFromEphemeris(self, time):
        if self.ephemeris is not None:
            self.setCurrentTranslationalState(self.ephemeris.getCartesianState(time), time)

    def getCurrentOrientation(self) -> Quaternion:
        ''' Unit quaternion, rotating from the body-fixed frame to the inertial frame. Intermediate integrator states may hold non-unit quaternions, these are normalized here '''
        return Quaternion(components=self.currentRotationalState[:4]).normalize()

    def getCurrentRotationToGlobalFrame(self) -> np.ndarray:
        return self.getCurrentOrientation().toRotationMatrix()

    def getCurrentRotationToLocalFrame(self) -> np.ndarray:
        return self.getCurrentRotationToGlobalFrame().T

    def getCurrentAngularVelocityInLocalFrame(self) -> np.ndarray:
        return self.currentRotationalState[4:]

    def getCurrentAngularVelocityInGlobalFrame(self) -> np.ndarray:
        return self.getCurrentRotationToGlobalFrame() @ self.currentRotationalState[4:]

    def getCurrentAngularMomentumInGlobalFrame(self) -> np.ndarray:
        return self.getCurrentRotationToGlobalFrame() @ self.inertia.getAngularMomentum(self.currentRotationalState[4:])

    def getPosition(self) -> np.ndarray:
        return self.currentTranslationalState[:3]

    def getVelocity(self) -> np.ndarray:
        return self.currentTranslationalState[3:]

    def __str__(self):
        return "Body: {}, mass: {}".format(self.name, self.mass)

class NamedBodyMap():
    '''
        Explicit context passed to derivative evaluations and to torque/acceleration models: maps body names to `Body` objects.
        Owned by exactly one propagation at a time.
    '''
    def __init__(self, bodies=None):
        self.bodies = {}
        self.propagatedRotationalBodies = set()
        self.propagatedTranslationalBodies = set()

        if bodies is not None:
            for body in bodies:
                self.addBody(body)

    def addBody(self, body: Body):
        if body.name in self.bodies:
            raise ValueError("Body {} already exists in the body map".format(body.name))
        self.bodies[body.name] = body

    def addNewBody(self, name, **bodyProperties) -> Body:
        body = Body(name, **bodyProperties)
        self.addBody(body)
        return body

    def getBody(self, name) -> Body:
        try:
            return self.bodies[name]
        except KeyError:
            raise KeyError("Body {} not found. Available bodies: {}".format(name, list(self.bodies.keys())))

    def __getitem__(self, name) -> Body:
        return self.getBody(name)

    def __contains__(self, name):
        return name in self.bodies

    def __iter__(self):
        return iter(self.bodies)

    def __len__(self):
        return len(self.bodies)

    def keys(self):
        return self.bodies.keys()

    def values(self):
        return self.bodies.values()

    def items(self):
        return self.bodies.items()

    def setPropagatedBodies(self, rotationalBodies=(), translationalBodies=()):
        ''' Propagated bodies have their current states set by the propagator, instead of by their ephemerides '''
        self.propagatedRotationalBodies = set(rotationalBodies)
        self.propagatedTranslationalBodies = set(translationalBodies)

    def updateEnvironment(self, time):
        ''' Updates the current states of all non-propagated bodies from their ephemerides '''
        for name, body in self.bodies.items():
            if name not in self.propagatedRotationalBodies:
                body.updateRotationalStateFromEphemeris(time)
            if name not in self.propagatedTranslationalBodies:
                body.updateTranslationalStateFromEphemeris(time)
            body.currentTime = time

    def getAltitude(self, bodyName, centralBodyName) -> float:
        ''' Altitude above the central body's reference sphere '''
        centralBody = self.getBody(centralBodyName)
        relativePosition = self.getBody(bodyName).getPosition() - centralBody.getPosition()
        radius = cartesianToSpherical(relativePosition)[0]
        return radius - centralBody.shapeRadius

#### Creation from simulation definitions ####
def bodyFactory(bodyDictReader) -> Body:
    '''
        Creates a body from its dictionary in a simulation definition (ex. 'Bodies.Earth'), pointed at by bodyDictReader (`SPINDLE.IO.SubDictReader`).

        'class CentralBody' bodies get gravity and atmosphere models, a rotation model, and a constant position.
        'class Vehicle' bodies get a mass and an inertia tensor. Their aerodynamic coefficients and initial states are set up by
            `SPINDLE.SimulationRunners.Simulation`
    '''
    name = bodyDictReader.getDictName()
    bodyClass = bodyDictReader.getString("class")

    if bodyClass == "CentralBody":
        gravityModel = gravityModelFactory(bodyDictReader)
        return Body(
            name,
            mass=bodyDictReader.getFloat("mass"),
            rotationalEphemeris=rotationalEphemerisFactory(bodyDictReader.getSubReader("RotationModel")),
            ephemeris=ConstantEphemeris(np.concatenate((bodyDictReader.getVector("position"), np.zeros(3)))),
            gravityModel=gravityModel,
            atmosphereModel=atmosphericModelFactory(atmosphereDictReader=bodyDictReader),
            shapeRadius=bodyDictReader.getFloat("radius")
        )

    elif bodyClass == "Vehicle":
        mass = bodyDictReader.getFloat("mass")
        return Body(name, mass=mass, inertia=Inertia(bodyDictReader.getVector("MOI"), mass))

    else:
        raise ValueError("Body class: {} not recognized for body {}. Try 'CentralBody' or 'Vehicle'".format(bodyClass, name))

def createBodyMap(simDefinition) -> NamedBodyMap:
    ''' Creates one body for each subdictionary of 'Bodies' '''
    from SPINDLE.IO import SubDictReader

    bodyMap = NamedBodyMap()
    for bodyPath in simDefinition.getImmediateSubDicts("Bodies"):
        bodyMap.addBody(bodyFactory(SubDictReader(bodyPath, simDefinition)))

    if len(bodyMap) == 0:
        raise ValueError("No bodies defined in {}. Add a 'Bodies' dictionary".format(simDefinition.fileName))

    return bodyMap
