import numpy as np

__all__ = [ "Inertia" ]

class Inertia():

    __slots__ = [ "tensor", "mass" ]

    def __init__(self, MOI, mass):
        """
            * MOI: Either principal moments of inertia (Ixx, Iyy, Izz) or a full, symmetric 3x3 inertia tensor (kg*m^2).
                Defined about the body's center of mass, in the body-fixed frame
            * mass: kg
        """
        MOI = np.asarray(MOI, dtype=np.float64)
        if MOI.shape == (3,):
            MOI = np.diag(MOI)
        elif MOI.shape != (3,3):
            raise ValueError("Moment of inertia must be a 3-vector of principal moments or a 3x3 tensor, got shape: {}".format(MOI.shape))

        if not np.allclose(MOI, MOI.T, rtol=1e-12, atol=0):
            raise ValueError("Inertia tensor must be symmetric: {}".format(MOI))

        self.tensor = MOI
        self.mass = mass

    def isDiagonal(self) -> bool:
        return not np.any(self.tensor - np.diag(np.diagonal(self.tensor)))

    def principalMoments(self) -> np.ndarray:
        ''' Eigenvalues of the inertia tensor, in ascending order '''
        return np.linalg.eigvalsh(self.tensor)

    def inFrame(self, rotationMatrix) -> np.ndarray:
        ''' Returns the tensor expressed in another frame. rotationMatrix: rotates vectors from the body frame into the other frame '''
        return rotationMatrix @ self.tensor @ rotationMatrix.T

    def getAngularMomentum(self, angularVelocity) -> np.ndarray:
        ''' Angular momentum about the center of mass, in the frame in which angularVelocity is expressed (must be the body frame) '''
        return self.tensor @ np.asarray(angularVelocity)

    def getRotationalKineticEnergy(self, angularVelocity) -> float:
        angularVelocity = np.asarray(angularVelocity)
        return 0.5 * float(angularVelocity @ self.tensor @ angularVelocity)

    def combineInertias(self, inertiasAndOffsets):
        """
            Combines this inertia with others into a single Inertia about the combined center of mass, using the parallel axis theorem.

            Inputs:
                inertiasAndOffsets: list of (Inertia, CGOffset) tuples. CGOffset: position of that inertia's CG relative to this one's CG, in the body frame
            Returns:
                (Inertia, combinedCGOffset): combinedCGOffset is the position of the combined CG, relative to this inertia's CG
        """
        allInertias = [ (self, np.zeros(3)) ] + [ (inertia, np.asarray(offset, dtype=np.float64)) for inertia, offset in inertiasAndOffsets ]

        totalMass = sum(inertia.mass for inertia, _ in allInertias)
        combinedCG = sum(inertia.mass*offset for inertia, offset in allInertias) / totalMass

        totalTensor = np.zeros((3,3))
        for inertia, offset in allInertias:
            # Parallel axis theorem: I_about_new_point = I_cg + m*( (r.r)*Identity - outer(r, r) )
            r = offset - combinedCG
            totalTensor += inertia.tensor + inertia.mass*(np.dot(r, r)*np.eye(3) - np.outer(r, r))

        return Inertia(totalTensor, totalMass), combinedCG

    def __eq__(self, inertia2):
        return self.mass == inertia2.mass and np.array_equal(self.tensor, inertia2.tensor)

    def __str__(self):
        return "Mass: {}, Inertia tensor: {}".format(self.mass, self.tensor.tolist())
