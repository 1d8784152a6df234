import setuptools
from setuptools import setup

import SPINDLE

#### Get/Set info to be passed into setup() ####
with open("README.md", "r") as fh:
    long_description = fh.read()

with open("requirements.txt") as reqFile:
    install_reqs = [ line.strip() for line in reqFile.readlines() if line.strip() != "" and not line.startswith("#") ]

setup(
    name='SPINDLE',
    version=SPINDLE.__version__,
    description="Coupled rotational and translational propagation of spacecraft and entry vehicles, driven by plain-text simulation definitions",
    install_requires=install_reqs,
    license='MIT',
    long_description = long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=[ "test", "test.*", ]),
    package_data={ "SPINDLE": [ "Examples/Simulations/*.spindle" ] },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Natural Language :: English",
        "Topic :: Scientific/Engineering :: Physics",
    ],
    include_package_data=True,
    extras_require={ "test": [ "pytest" ] },

    python_requires='>=3.8',
    zip_safe=False,

    entry_points={
        'console_scripts': [
            'spindle = SPINDLE.Main:main' ]
    }
)
