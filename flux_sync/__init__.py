"""flux-sync builds and applies flux Kustomizations.

A Kustomization points at an artifact published by a GitRepository. On every
reconcile the artifact is downloaded into a temporary workspace, rendered with
`kustomize build` and applied with `kubectl apply`, and the outcome is written
to the Ready condition of the Kustomization.
"""

__all__ = [
    "manifest",
    "controller",
    "manager",
    "store",
    "exceptions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
