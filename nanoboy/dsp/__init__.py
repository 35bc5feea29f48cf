"""Audio signal processing: stereo samples, streams, ring buffer and resamplers."""