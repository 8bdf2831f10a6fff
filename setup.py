# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf

from setuptools import setup, find_packages

_test_deps = [
    "pytest",
]

setup(
    name="pyxdmf",
    version="0.1.0",
    url="https://github.com/pyxdmf/pyxdmf",
    license="BSD-3",
    description="Write unstructured meshes and time series of point and cell data to XDMF",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["pyxdmf", "pyxdmf.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "h5py",
        "jax",
        "vtk",
    ],
    extras_require={
        # Install these to run the test suite: pip install pyxdmf[test]
        "test": _test_deps,
        # Optional JAX backends
        "cuda": ["jax[cuda]"],
    },
)
