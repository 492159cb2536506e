import numpy as np

def gradient_h(I):
    return np.pad(I[:, 1:] - I[:, :-1], ((0,0),(0,1)))

def gradient_v(I):
    return np.pad(I[1:, :] - I[:-1, :], ((0,1),(0,0)))

def gradient_h_transpose(G):
    # adjoint of gradient_h: last column of G is ignored (always zero-padded)
    out = np.zeros_like(G)
    out[:, 1:] += G[:, :-1]
    out[:, :-1] -= G[:, :-1]
    return out

def gradient_v_transpose(G):
    out = np.zeros_like(G)
    out[1:, :] += G[:-1, :]
    out[:-1, :] -= G[:-1, :]
    return out


def compute_gradients(img):
    #return tuple(grad_h, grad_v)
    gh = gradient_h(img)
    gv = gradient_v(img)
    return gh, gv

def gradient_mag_sq(grad):
    gh, gv = grad
    return gh**2 + gv**2
