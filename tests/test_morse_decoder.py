import io
import types

import numpy as np
import pytest

from dsppipe.morse_decoder import MAX_DAH, Entity, MorseDecoder, main, to_char

DIT_LEN, DAH_LEN, GAP, CHAR_GAP, WORD_GAP, TRAIL = 3, 9, 3, 9, 21, 30
CODES = {"S": "...", "O": "---"}


def _keyed(text):
    samples = [0.0] * WORD_GAP
    for w_index, word in enumerate(text.split()):
        if w_index:
            samples += [0.0] * WORD_GAP
        for c_index, ch in enumerate(word):
            if c_index:
                samples += [0.0] * CHAR_GAP
            for e_index, element in enumerate(CODES[ch]):
                if e_index:
                    samples += [0.0] * GAP
                samples += [1.0] * (DIT_LEN if element == "." else DAH_LEN)
    samples += [0.0] * TRAIL
    return samples


def _packed(samples):
    return np.asarray(samples, dtype=np.float32).tobytes()


@pytest.fixture
def sos_samples():
    return _keyed("SOS SOS")


def _decoder(samples):
    out = io.StringIO()
    return MorseDecoder(io.BytesIO(_packed(samples)), out), out


def test_to_char_table_entries():
    assert to_char(".- ") == "A"
    assert to_char("--.. ") == "Z"
    assert to_char("... ") == "S"
    assert to_char(" ") == " "


def test_to_char_empty_and_unknown():
    assert to_char("") == ""
    assert to_char("........ ") == ""


def test_generate_classifier_counts_samples(sos_samples):
    decoder, _ = _decoder(sos_samples)
    count, threshold = decoder.generate_classifier(0.0)
    assert count == len(sos_samples)
    assert threshold == pytest.approx(0.05)
    assert decoder.historical_threshold == threshold
    assert decoder.delta_threshold == pytest.approx(threshold)


def test_generate_classifier_modes(sos_samples):
    decoder, _ = _decoder(sos_samples)
    decoder.generate_classifier(0.0)
    assert [i for i, v in enumerate(decoder.dit_classifier) if v] == [DIT_LEN]
    assert [i for i, v in enumerate(decoder.dah_classifier) if v] == [DAH_LEN]
    assert [i for i, v in enumerate(decoder.space_classifier) if v] == [GAP]
    assert [i for i, v in enumerate(decoder.character_classifier) if v] == [CHAR_GAP]
    assert [i for i, v in enumerate(decoder.word_classifier) if v] == list(
        range(WORD_GAP, MAX_DAH)
    )


def test_classify_runs(sos_samples):
    decoder, _ = _decoder(sos_samples)
    decoder.generate_classifier(0.0)
    assert decoder.classify(DIT_LEN, 0) is Entity.DIT
    assert decoder.classify(DAH_LEN, 0) is Entity.DAH
    assert decoder.classify(0, GAP) is Entity.SPACE
    assert decoder.classify(0, CHAR_GAP) is Entity.CHARACTER_SEPARATION
    assert decoder.classify(0, WORD_GAP + 4) is Entity.WORD_SEPARATION
    assert decoder.classify(0, 5) is Entity.ERROR
    assert decoder.classify(0, 0) is Entity.ERROR
    assert decoder.classify(MAX_DAH + 10, 0) is Entity.ERROR


def test_classify_rejects_both_counts(sos_samples):
    decoder, _ = _decoder(sos_samples)
    decoder.generate_classifier(0.0)
    with pytest.raises(ValueError):
        decoder.classify(3, 3)


def test_generate_classifier_empty_input():
    decoder, _ = _decoder([])
    assert decoder.generate_classifier(0.0) == (0, 0.0)


def test_generate_classifier_just_read_leaves_classifiers(sos_samples):
    decoder, _ = _decoder(sos_samples)
    count, threshold = decoder.generate_classifier(0.7, just_read=True)
    assert (count, threshold) == (len(sos_samples), 0.7)
    assert not any(decoder.dit_classifier)
    assert not any(decoder.word_classifier)


def test_threshold_above_peak_returns_minus_one():
    decoder, _ = _decoder([1.0] * 50)
    count, threshold = decoder.generate_classifier(0.0)
    assert count == -1
    assert threshold > 1.0


def test_overlapping_marks_exhaust_thresholds():
    samples = [0.0] * 5
    for length in (3, 4, 5):
        samples += [1.0] * length + [0.0] * 5
    decoder, _ = _decoder(samples)
    count, _ = decoder.generate_classifier(0.0)
    assert count == -1


def test_decode_buffer_decodes_and_freezes(sos_samples):
    decoder, out = _decoder(sos_samples)
    count, threshold = decoder.generate_classifier(0.0)
    decoder.threshold = threshold
    assert decoder.decode_buffer(count) is True
    lines = out.getvalue().splitlines()
    assert lines[0] == f"Message(10, {len(sos_samples)},  0.05):   SOS SOS "
    assert lines[1].endswith("  SOS SOS ")
    assert "Messages match" in lines[2]


def test_main_reads_stdin(monkeypatch, capsys, sos_samples):
    monkeypatch.setattr(
        "sys.stdin", types.SimpleNamespace(buffer=io.BytesIO(_packed(sos_samples)))
    )
    assert main([]) == 0
    assert "SOS SOS" in capsys.readouterr().out