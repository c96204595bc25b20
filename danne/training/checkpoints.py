"""Snapshot a network's weights and shape to disk and rebuild it later."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np

from ..core.errors import InvalidConfigurationError
from ..core.layer import Layer
from ..core.network import Network
from ..core.neuron import Neuron
from ..core.types import NetworkState

FORMAT_VERSION = 1


def save_network(network: Network, path: str | Path) -> str:
    """Write ``network`` as a compressed ``.npz`` archive and return its path.

    The archive holds ``W{i}``/``b{i}`` per layer plus a JSON ``meta`` entry
    with the layer shapes and hyperparameters needed to rebuild it.
    """

    description = network.describe()
    meta = {
        "version": FORMAT_VERSION,
        "layer_dims": description.layer_dims,
        "activations": description.activations,
        "bias_mode": description.bias_mode,
        "learning_rate": network.learning_rate,
        "epoch_count": network.epoch_count,
        "apply_learning_rate": network.apply_learning_rate,
        "squash_targets": network.squash_targets,
        "state": network.state.value,
        "epochs_trained": network.epochs_trained,
    }
    payload = dict(network.state_dict())
    payload["meta"] = np.array(json.dumps(meta, sort_keys=True))
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as handle:
        np.savez_compressed(handle, **payload)
    return str(path)


def load_network(path: str | Path) -> Network:
    """Rebuild a network saved by :func:`save_network`, ready for inference.

    No training data comes back with it; bind some with
    :meth:`Network.bind_training_data` to keep training.
    """

    with np.load(Path(path), allow_pickle=False) as archive:
        if "meta" not in archive.files:
            raise InvalidConfigurationError(f"{path} is not a danne checkpoint (no meta entry)")
        try:
            meta = json.loads(str(archive["meta"]))
            dims = [int(d) for d in meta["layer_dims"]]
            activations = list(meta["activations"])
            bias_mode = meta["bias_mode"]
            if len(dims) < 3 or len(activations) != len(dims) - 1:
                raise InvalidConfigurationError(f"{path} describes an invalid topology {dims}")
            layers = []
            for idx, activation in enumerate(activations):
                weights = archive[f"W{idx}"]
                biases = archive[f"b{idx}"]
                if weights.shape != (dims[idx + 1], dims[idx]) or biases.shape != (dims[idx + 1],):
                    raise InvalidConfigurationError(
                        f"Layer {idx} in {path} has shape {weights.shape}, expected "
                        f"{(dims[idx + 1], dims[idx])}"
                    )
                neurons = [
                    Neuron.from_parameters(row, bias, activation, bias_mode)
                    for row, bias in zip(weights, biases)
                ]
                layers.append(Layer.from_neurons(neurons))
        except (KeyError, json.JSONDecodeError) as exc:
            raise InvalidConfigurationError(f"Malformed checkpoint {path}: {exc}") from exc

    network = Network.from_layers(
        layers[:-1],
        layers[-1],
        trained=meta.get("state") == NetworkState.TRAINED.value,
        learning_rate=float(meta.get("learning_rate", 1.0)),
        epoch_count=int(meta.get("epoch_count", 0)),
        apply_learning_rate=bool(meta.get("apply_learning_rate", True)),
        squash_targets=bool(meta.get("squash_targets", False)),
        bias_mode=bias_mode,
    )
    network.epochs_trained = int(meta.get("epochs_trained", 0))
    return network


__all__ = ["FORMAT_VERSION", "load_network", "save_network"]
