import os

import pytest

from sfcplace.milp.params import Parameters, read_parameters


def test_defaults():
    params = Parameters()
    assert params.threads == 1
    assert params.seed == 20102019
    assert params.approximation == "none"
    assert not params.uses_approximation
    assert not params.chain_cover_first_hit
    assert params.generalized_cover_first_hit


def test_read_parameters(tmp_path, capsys):
    path = tmp_path / "params.txt"
    path.write_text(
        "# instance\n"
        "node_file=nodes.csv\n"
        "demand_file=/abs/demands.csv\n"
        "\n"
        "lazy=0\n"
        "chain_cover=false\n"
        "approximation=-1\n"
        "nb_breakpoints=5\n"
        "time_limit=60\n"
        "colour=blue\n",
        encoding="utf-8",
    )
    params = read_parameters(str(path), msg=True)
    assert params.node_file == os.path.join(str(tmp_path), "nodes.csv")
    assert params.demand_file == "/abs/demands.csv"
    assert params.lazy is False
    assert params.chain_cover is False
    assert params.approximation == "restriction"
    assert params.nb_breakpoints == 5
    assert params.time_limit == 60.0
    assert "[WARN][PARAMS] Unknown parameter 'colour'" in capsys.readouterr().out


def test_missing_parameter_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_parameters(str(tmp_path / "nope.txt"))


@pytest.mark.parametrize("line", ["lazy=maybe", "threads=two", "approximation=exact", "threads=0", "no_equal_sign"])
def test_bad_parameter_values(tmp_path, line):
    path = tmp_path / "params.txt"
    path.write_text(line + "\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_parameters(str(path), msg=False)


def test_breakpoints_checked_only_when_approximating():
    Parameters(nb_breakpoints=1)
    with pytest.raises(ValueError):
        Parameters(approximation="relaxation", nb_breakpoints=1)
