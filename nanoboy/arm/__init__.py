"""ARM7TDMI processor: register file, ALU, ARM and Thumb handlers, and interpreter."""