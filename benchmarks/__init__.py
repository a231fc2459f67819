"""
Benchmark suite for source map mappings codecs.

Compares the candidates registered in sourcemap_codec.benchmark:
- sourcemap_codec (the main codec)
- sourcemap_codec.legacy (character-by-character baseline)
- consumer (eager consumer/generator object model)
- indexed (array-backed consumer that must be destroyed between parses)

Measures decode and encode speed and memory usage over generated maps.
"""
