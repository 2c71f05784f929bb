import numpy as np
import fillhist as fh


def generate(n, seed=2024):
    """Synthetic pion-like particles: (E, pt, y)."""
    rng = np.random.default_rng(seed)
    px, py, pz = rng.normal(0.0, 0.4, size=(3, n))
    E = np.sqrt(0.139**2 + px**2 + py**2 + pz**2)
    pt = np.hypot(px, py)
    y = 0.5 * np.log((E + pz) / (E - pz))
    return E, pt, y


def main():
    n = 10_000
    E, pt, y = generate(n)

    # pt: uniform bins, no catch-bins; y: variable bins with both catch-bins
    H = fh.Histogram(
        [
            fh.UniformAxis(30, 0.0, 3.0, underflow=False, overflow=False),
            fh.VariableAxis([-4, -2, -1, -0.5, 0, 0.5, 1, 2, 4]),
        ]
    )
    # per-bin maximum energy
    Emax = fh.Histogram(H.axes, kind="generic", generic_default=0.0, combine=max)

    for i in range(n):
        H.fill(pt[i], y[i])
        Emax.fill(pt[i], y[i], weight=float(E[i]))

    print(H)
    print(f"dropped {H.n_dropped} of {n} points")
    print("dN/dy (no flow):", H.values(flow=False).sum(axis=0))
    print("max E in first pt bin:", [Emax.bin_value(0, j) for j in range(Emax.shape[1])])

    # the same histogram filled in bulk across two processes
    H2 = fh.fill_parallel(H.empty_like(), pt, y, nproc=2)
    assert H2 == H


if __name__ == "__main__":
    main()
