"""Bundled trust-chain certificates.

``wwdr.pem`` in this directory is the pass issuer's intermediate
certificate (PEM, one or more certificates) embedded into every
signature; Apple's DER download ``AppleWWDRCAG4.cer`` is accepted in its
place. ``passforge fetch-trust-chain`` installs it here. Deployments that
cannot write to the package point ``PASSFORGE_TRUST_CHAIN_PATH`` at their
copy instead.
"""
