"""Monte Carlo pricing of path-dependent options on CUDA devices."""
