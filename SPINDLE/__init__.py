'''
SPINDLE: Spacecraft Propagation of INertial Dynamics, Linked to Ephemerides

Simulation entry point: `SPINDLE.Main.main`.
`SPINDLE.Main.main` initializes a `SPINDLE.SimulationRunners.Simulation`, which builds the bodies, models and propagator settings
described by a simulation definition file, then hands them to a `SPINDLE.SimulationRunners.DynamicsSimulator`.

Subpackages:

* `SPINDLE.Motion` - quaternions, reference frame transformations, equations of motion, integrators, interpolators
* `SPINDLE.ENV` - bodies, the body map, rotational/translational ephemerides, gravity and atmosphere models
* `SPINDLE.Models` - torque and acceleration models, aerodynamic angles and coefficients
* `SPINDLE.SimulationRunners` - propagator settings and the dynamics simulator
* `SPINDLE.IO` - simulation definition files, logging and results output

See [README.md](README.md) for installation and for running the example simulations in `SPINDLE/Examples/Simulations`
'''

__version__ = "0.3.1"

__pdoc__ = {
    'Examples': False
}
