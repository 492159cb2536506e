# super-resolution factor (HR size = LR size * SCALE)
SCALE = 2

# blur (Gaussian PSF of the camera)
BLUR_KERNEL_SIZE = 5   # Must be odd
BLUR_SIGMA = 1.0       # <= 0 disables the blur

# motion: one (dx, dy) integer shift in HR pixels per frame.
# None means every frame is aligned (no motion operator).
# With SCALE = 2 the four shifts below sample every LR phase once.
MOTION_SHIFTS = [(0, 0), (1, 0), (0, 1), (1, 1)]

# regularization weights (Adapted for [0.0, 1.0] float images)
TV_LAMBDA = 0.05        # total variation
TIKHONOV_LAMBDA = 0.0   # Laplacian smoothness, 0 = not registered

# IRLS reweighting: "l1", "huber" or "uniform"
IRLS_WEIGHTS = "l1"
IRLS_EPSILON = 1e-4     # floor on |residual| for l1 weights
HUBER_THRESHOLD = 0.01

# solver: "irls" or "map"
SOLVER = "irls"

# convergence (0 disables a threshold, MAX_ITER = 0 means no cap)
GRADIENT_NORM_THRESHOLD = 1e-10
COST_CHANGE_THRESHOLD = 0.0
STEP_SIZE_THRESHOLD = 0.0
MAX_ITER = 50

# io
GRAYSCALE = True       # False solves each BGR channel separately

# path 
RESULT_PATH = "results/output.png"
