"""Core of the triangle mosaic: lattice, angles, propagation and fading."""
