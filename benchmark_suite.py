
import time
import gc
import numpy as np
import pandas as pd
from diagram_distances import (
    bottleneck_pairwise_distances,
    wasserstein_pairwise_distances,
    configure_logging,
)

# Configuration
SIZES = [10, 25, 50, 100] # points per diagram
NUM_DIAGRAMS = 8
WORKERS = [1, 2, 4]
METHODS = ['wasserstein', 'bottleneck']
EXECUTORS = ['thread', 'process']

results = []

def make_collection(rng, n_points, n_diagrams=NUM_DIAGRAMS):
    collection = []
    for _ in range(n_diagrams):
        births = rng.uniform(0, 10, size=n_points)
        deaths = births + rng.exponential(1.0, size=n_points)
        collection.append(np.stack([births, deaths], axis=1))
    return collection

def run_benchmark():
    configure_logging("WARNING")
    rng = np.random.default_rng(0)

    for N in SIZES:
        print(f"\n--- Config: diagrams={NUM_DIAGRAMS}, points={N} ---")
        collection = make_collection(rng, N)
        reference = {}

        for method in METHODS:
            for executor in EXECUTORS:
                for workers in WORKERS:
                    if executor == 'process' and workers == 1:
                        continue
                    try:
                        if method == 'wasserstein':
                            stmt = lambda: wasserstein_pairwise_distances(collection, p=2.0, workers=workers, executor=executor)
                        else:
                            stmt = lambda: bottleneck_pairwise_distances(collection, tol=0.0, workers=workers, executor=executor)

                        t0 = time.time()
                        D = stmt()
                        t1 = time.time()
                        elapsed_ms = (t1 - t0) * 1000

                        # Same slots whatever the pool
                        if method in reference:
                            assert np.array_equal(reference[method], D.values), f"{method} differs with {workers} {executor} workers"
                        else:
                            reference[method] = D.values

                        print(f"{method} [{executor} x{workers}]: {elapsed_ms:.1f} ms")

                        results.append({
                            "Method": method,
                            "Executor": executor,
                            "Workers": workers,
                            "Points": N,
                            "Time_ms": elapsed_ms,
                        })

                    except Exception as e:
                        print(f"{method} [{executor} x{workers}] Failed: {e}")

                    gc.collect()

    # Save Results
    df = pd.DataFrame(results)
    df.to_csv("benchmark_results.csv", index=False)
    print("\nResults saved to benchmark_results.csv")

if __name__ == "__main__":
    run_benchmark()
