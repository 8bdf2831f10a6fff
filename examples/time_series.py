"""
Writing a Time Series
----------------------------------------

This example writes a small heat-diffusion run with
:py:class:`pyxdmf.TimeSeriesWriter`. The mesh is written once, then every
step adds its point and cell data. The resulting ``.xdmf`` file opens directly
in ParaView or VisIt.
"""

# %%
# The Mesh
# ~~~~~~~~~~~~~~~~~~~~~
# We triangulate a unit square with ``n x n`` quads, each split into two
# triangles. Points are given as a flat ``(3N,)`` array or as ``(N, 3)``; the
# connectivity concatenates the point indices of all cells.

import jax
import jax.numpy as jnp
import numpy as np

import pyxdmf

n = 16
x, y = np.meshgrid(np.linspace(0.0, 1.0, n + 1), np.linspace(0.0, 1.0, n + 1), indexing="ij")
points = np.stack([x.ravel(), y.ravel(), np.zeros(x.size)], axis=1)

idx = np.arange((n + 1) ** 2).reshape(n + 1, n + 1)
a, b, c, d = idx[:-1, :-1], idx[1:, :-1], idx[1:, 1:], idx[:-1, 1:]
triangles = np.concatenate(
    [np.stack([a, b, c], axis=-1).reshape(-1, 3), np.stack([a, c, d], axis=-1).reshape(-1, 3)]
)
connectivity = triangles.ravel()
cell_kinds = [pyxdmf.CellKind.TRIANGLE] * len(triangles)

# %%
# Validation happens before anything is written. :py:meth:`pyxdmf.Mesh.create`
# checks that the connectivity matches the cell kinds and addresses existing
# points, and returns read-only arrays.

mesh = pyxdmf.Mesh.create(points, connectivity, cell_kinds)
print(f"{mesh.num_points} points, {mesh.num_cells} cells")

# %%
# The Simulation
# ~~~~~~~~~~~~~~~~~~~~~
# A jitted explicit step of the heat equation on the grid nodes. The writer
# accepts JAX arrays and fetches them from the device.


@jax.jit
def step(T, dt=2e-4):
    h = 1.0 / n
    lap = jnp.zeros_like(T)
    lap = lap.at[1:-1, 1:-1].set(
        (T[2:, 1:-1] + T[:-2, 1:-1] + T[1:-1, 2:] + T[1:-1, :-2] - 4 * T[1:-1, 1:-1]) / h**2
    )
    return T + dt * lap


T = jnp.exp(-50.0 * ((jnp.asarray(x) - 0.5) ** 2 + (jnp.asarray(y) - 0.5) ** 2))

# %%
# Writing
# ~~~~~~~~~~~~~~~~~~~~~
# Step labels become the time values of the series. Point data needs
# ``components * num_points`` values, cell data ``components * num_cells``.
# Using the writer as a context manager guarantees that the document and the
# HDF5 container are finalized even if the loop raises.

with pyxdmf.TimeSeriesWriter("out/heat", storage="hdf5_single", compression=4) as writer:
    writer.write_mesh(mesh)
    for i in range(20):
        for _ in range(10):
            T = step(T)
        cell_T = np.asarray(T).ravel()[triangles].mean(axis=1)
        writer.write_data(
            f"{i * 10 * 2e-4:.4f}",
            point_data={"T": ("scalar", T.ravel())},
            cell_data={"T_mean": (pyxdmf.AttributeShape.SCALAR, cell_T)},
        )
    print(f"wrote {writer.step_count} steps to {writer.document_path}")

# %%
# Other Backends
# ~~~~~~~~~~~~~~~~~~~~~
# The heavy data can also be kept inline in the document (``ascii_inline``),
# one text file per array (``ascii``) or one HDF5 file per step
# (``hdf5_multiple``). The backend is chosen by name; aliases such as
# ``"Hdf5MultipleFiles"`` are accepted too.

print(pyxdmf.DataStorage.available())

with pyxdmf.TimeSeriesWriter("out/heat_small", storage="AsciiInline") as writer:
    writer.write_mesh(mesh)
    writer.write_data(0.0, point_data={"T": ("scalar", T.ravel())})

# %%
# For a visual check against VTK, the same mesh and data can be written as a
# single ``.vtu`` snapshot.

pyxdmf.write_vtu(mesh, "out/heat_final.vtu", point_data={"T": ("scalar", T.ravel())})
