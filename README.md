# dsppipe

Signal-processing building blocks for amateur radio receive chains. The
modules work on NumPy arrays or on raw `float32` byte streams, so they can sit
in a shell pipeline between a sample source and a decoder.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## What is inside

| Module | Purpose |
| --- | --- |
| `dsppipe.poly` | `Polynomial`: multiply, add, raise to a power, evaluate and integrate polynomials. |
| `dsppipe.regression` | `Regression`: least-squares line fit through a list of values, with `slope`, `y_intercept`, `min_centroid` and `max_centroid`. |
| `dsppipe.sfir_filter` | `design_coefficients` and `SmoothFIRFilter`: smooth low/high-pass FIR filters built from (1 + t)^p (1 - t)^q, with decimation, for real or I/Q samples. |
| `dsppipe.fano` | `encode`, `decode`, `deinterleave` and `metric_table`: the K=32, rate 1/2 convolutional code used by WSPR and its soft-decision Fano sequential decoder. `decode` returns a `FanoResult` or raises `FanoTimeoutError`. |
| `dsppipe.wspr_message` | `unpack_message`, `unpack_call`, `unpack_grid`, `unpack_prefix`, `unpack50`, `nhash` and `CallsignHashTable`: turn a decoded WSPR payload into a `WsprMessage` with call sign, locator and power. |
| `dsppipe.spot_candidate` | `SpotCandidate`, `SampleRecord` and `tokenize`: collect per-frame centroids of a possible WSPR spot and turn a valid run into channel symbols 0..3. |
| `dsppipe.wspr_utilities` | `write_file`, `read_file`, `spot_url` and `report_spot`: store captured sample windows behind a zeroed header, and build or send a spot report as an HTTP HEAD request. |
| `dsppipe.morse_decoder` | `MorseDecoder`, `Entity` and `to_char`: adaptive-threshold Morse decoder working on an envelope stream. |
| `dsppipe.real_to_quadrature` | `RealToQuadrature`, `hilbert_block` and `downconvert_block`: turn a real signal into I/Q samples by an FFT Hilbert transform or by quarter-rate mixing. |

## Examples

Low-pass filter a complex block, keeping every fourth output sample:

```python
import numpy as np
from dsppipe.sfir_filter import SmoothFIRFilter

filt = SmoothFIRFilter(0.2, 4, False, True)
output = filt.filter_block(np.zeros(filt.input_length, dtype=np.complex64))
# output holds 1024 complex64 samples
```

`filter_stream(source, sink)` does the same over binary streams of raw
samples, one block at a time, and raises `EOFError` on a partial final block.

Encode and decode with the Fano sequential decoder. The decoder takes soft
symbols 0..255, where 0 stands for a confident 0 and 255 for a confident 1:

```python
from dsppipe.fano import decode, encode

symbols = encode(bytes(11))
soft = bytes(255 * s for s in symbols)
result = decode(soft, 81, 60, 10000)
print(result.data, result.metric, result.cycles)
```

Unpack a WSPR payload (`payload` holds the decoded bytes):

```python
from dsppipe.wspr_message import CallsignHashTable, unpack_message

table = CallsignHashTable()
message = unpack_message(payload, table)
print(message.text, message.printable)
```

Convert a real block to I/Q:

```python
import numpy as np
from dsppipe.real_to_quadrature import hilbert_block

iq = hilbert_block(np.sin(np.arange(256) * 0.3))
```

## Command line

The Morse decoder reads `float32` envelope samples from standard input and
prints a `Message(...)` line with the decoded text for each buffer:

```
some-envelope-source | dsppipe-morse
```

## What it does not do

The package has no network streaming: there is no client that connects to an
SDR sample server and no server that sends a sample stream to clients. Feed it
samples from files or pipes instead.