'''
Scalar-first quaternions, used throughout SPINDLE to represent orientation.

Convention: components are stored as [ w, x, y, z ].
A quaternion q representing the orientation of a body-fixed (target) frame relative to an inertial (base) frame
    rotates vectors from the target frame into the base frame: v_base = q.rotate(v_target) = q.toRotationMatrix() @ v_target

scipy.spatial.transform.Rotation stores quaternions as [ x, y, z, w ] (scalar-last).
    All conversions to/from scipy go through `Quaternion.toScipyRotation` and `Quaternion.fromScipyRotation`,
    never through raw component arrays.
'''
from math import acos, cos, sin

import numpy as np
from scipy.spatial.transform import Rotation

__all__ = [ "Quaternion", "crossProductMatrix", "vectorFromCrossProductMatrix" ]

class Quaternion():

    __slots__ = [ "Q" ]

    def __init__(self, *args, components=None, axisOfRotation=None, angle=None):
        '''
            Construct from any one of:

            * Four positional components: Quaternion(w, x, y, z)
            * components=[ w, x, y, z ]
            * axisOfRotation=[ x, y, z ], angle=(radians): active rotation about the axis, right-hand rule. The axis does not have to be a unit vector.
        '''
        if len(args) == 4:
            self.Q = np.array(args, dtype=np.float64)

        elif components is not None:
            self.Q = np.array(components, dtype=np.float64)
            if self.Q.shape != (4,):
                raise ValueError("Quaternion requires 4 components, got: {}".format(components))

        elif axisOfRotation is not None and angle is not None:
            axis = np.asarray(axisOfRotation, dtype=np.float64)
            axis = axis / np.linalg.norm(axis)
            halfAngle = angle/2
            self.Q = np.array([ cos(halfAngle), *(sin(halfAngle)*axis) ])

        elif len(args) == 0:
            self.Q = np.array([ 1.0, 0.0, 0.0, 0.0 ])

        else:
            raise ValueError("Quaternion expects 4 components, components=[w,x,y,z], or axisOfRotation=[x,y,z] and angle=float. Got: {}".format(args))

    #### Alternate constructors ####
    @classmethod
    def fromRotationMatrix(cls, rotationMatrix):
        ''' Returns the unit quaternion (with w >= 0) equivalent to an orthonormal rotation matrix '''
        return cls.fromScipyRotation(Rotation.from_matrix(np.asarray(rotationMatrix)))

    @classmethod
    def fromScipyRotation(cls, rotation: Rotation):
        ''' Converts a scipy Rotation (scalar-last storage) into a scalar-first Quaternion, with w >= 0 '''
        x, y, z, w = rotation.as_quat()
        if w < 0:
            return cls(-w, -x, -y, -z)
        return cls(w, x, y, z)

    def toScipyRotation(self) -> Rotation:
        w, x, y, z = self.Q
        return Rotation.from_quat([ x, y, z, w ])

    #### Component access ####
    @property
    def w(self):
        return self.Q[0]

    @property
    def x(self):
        return self.Q[1]

    @property
    def y(self):
        return self.Q[2]

    @property
    def z(self):
        return self.Q[3]

    @property
    def vectorPart(self):
        return self.Q[1:]

    def asArray(self) -> np.ndarray:
        ''' Returns a copy of the components: [ w, x, y, z ] '''
        return self.Q.copy()

    def __getitem__(self, index):
        return self.Q[index]

    def __iter__(self):
        return iter(self.Q)

    def __len__(self):
        return 4

    #### Arithmetic ####
    def __add__(self, quat2):
        return Quaternion(components=self.Q + quat2.Q)

    def __sub__(self, quat2):
        return Quaternion(components=self.Q - quat2.Q)

    def __neg__(self):
        return Quaternion(components=-self.Q)

    def __mul__(self, other):
        ''' Scalar multiplication, or the Hamilton product (self applied after other when used to rotate vectors) '''
        if isinstance(other, Quaternion):
            w1, v1 = self.Q[0], self.Q[1:]
            w2, v2 = other.Q[0], other.Q[1:]
            w = w1*w2 - np.dot(v1, v2)
            v = w1*v2 + w2*v1 + np.cross(v1, v2)
            return Quaternion(w, *v)
        else:
            return Quaternion(components=self.Q*other)

    def __rmul__(self, scalar):
        return Quaternion(components=self.Q*scalar)

    def __truediv__(self, other):
        if isinstance(other, Quaternion):
            return self * other.inverse()
        else:
            return Quaternion(components=self.Q/other)

    def __eq__(self, quat2):
        return np.array_equal(self.Q, quat2.Q)

    def __ne__(self, quat2):
        return not self.__eq__(quat2)

    #### Quaternion operations ####
    def norm(self) -> float:
        return float(np.linalg.norm(self.Q))

    def normalize(self):
        return Quaternion(components=self.Q / np.linalg.norm(self.Q))

    def conjugate(self):
        return Quaternion(self.Q[0], -self.Q[1], -self.Q[2], -self.Q[3])

    def inverse(self):
        return Quaternion(components=self.conjugate().Q / np.dot(self.Q, self.Q))

    def rotate(self, vector) -> np.ndarray:
        ''' Actively rotates a 3-vector: returns the vector part of q*(0,v)*q^-1. Assumes a unit quaternion '''
        vector = np.asarray(vector, dtype=np.float64)
        qv = self.Q[1:]
        t = 2*np.cross(qv, vector)
        return vector + self.Q[0]*t + np.cross(qv, t)

    def toRotationMatrix(self) -> np.ndarray:
        '''
            Returns the 3x3 matrix equivalent to self.rotate.
            No normalization is applied: for a non-unit quaternion the result is scaled by the squared norm, and is not orthonormal
        '''
        w, x, y, z = self.Q
        return np.array([
            [ w*w + x*x - y*y - z*z,    2*(x*y - w*z),          2*(x*z + w*y) ],
            [ 2*(x*y + w*z),            w*w - x*x + y*y - z*z,  2*(y*z - w*x) ],
            [ 2*(x*z - w*y),            2*(y*z + w*x),          w*w - x*x - y*y + z*z ]
        ])

    def rotationAngle(self) -> float:
        ''' Angle of rotation in radians, in [0, 2pi] '''
        cosHalfAngle = max(-1.0, min(1.0, self.Q[0] / self.norm()))
        return 2*acos(cosHalfAngle)

    def rotationAxis(self) -> np.ndarray:
        ''' Unit vector about which self rotates. Returns the x-axis for the identity rotation '''
        vectorNorm = np.linalg.norm(self.Q[1:])
        if vectorNorm == 0:
            return np.array([ 1.0, 0.0, 0.0 ])
        return self.Q[1:] / vectorNorm

    def scaleRotation(self, fraction):
        ''' Returns a quaternion about the same axis, rotating by fraction*self.rotationAngle() '''
        return Quaternion(axisOfRotation=self.rotationAxis(), angle=self.rotationAngle()*fraction)

    def slerp(self, quat2, fraction):
        '''
            Spherical linear interpolation between self (fraction=0) and quat2 (fraction=1), along the shortest path.
            Returns a unit quaternion.
        '''
        q1 = self.normalize()
        q2 = quat2.normalize()
        if np.dot(q1.Q, q2.Q) < 0:
            q2 = -q2

        delta = q1.conjugate() * q2
        return (q1 * delta.scaleRotation(fraction)).normalize()

    #### Utilities ####
    def __str__(self):
        return "<{}, {}, {}, {}>".format(*self.Q)

    def __repr__(self):
        return "Quaternion({}, {}, {}, {})".format(*self.Q)

def crossProductMatrix(vector) -> np.ndarray:
    ''' Returns the skew-symmetric matrix vx such that vx @ a == np.cross(vector, a) '''
    x, y, z = vector
    return np.array([
        [ 0.0, -z,    y ],
        [ z,    0.0, -x ],
        [ -y,   x,    0.0 ]
    ])

def vectorFromCrossProductMatrix(matrix) -> np.ndarray:
    ''' Inverse of `crossProductMatrix`. Reads the lower-triangular entries, no check for skew-symmetry is made '''
    return np.array([ matrix[2][1], matrix[0][2], matrix[1][0] ])
