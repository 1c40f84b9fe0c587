# slidesvg engine: units, image loading and text measurement.
# Submodules are imported directly; the schema depends on units, and
# text_measure depends on the schema.
