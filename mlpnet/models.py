"""Multilayer perceptron estimators."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import List, Sequence, Tuple

import numpy as np

from .core.activations import ActivationFunctions, activation_name, get_activation
from .core.backprop import BackpropConfig
from .core.errors import ConfigurationError
from .core.layers import Layer
from .core.network import Network
from .core.optimizers import (
    EXTERNAL_SOLVERS,
    OptimizerFactory,
    is_external,
    optimizer_factory,
)
from .core.types import Array, FitResult
from .training.losses import REGISTRY as LOSS_REGISTRY
from .training.metrics import predicted_labels
from .training.metrics import score as score_predictions
from .training.minimizers import Minimizer, ScipyMinimizer
from .training.trainer import (
    FullBatchRunner,
    MinibatchRunner,
    Trainer,
    default_epochs,
)


@dataclass
class MLPRegressor:
    """Feed-forward network trained by minibatch optimizers or a full-batch minimizer.

    ``activation`` is a name (identity, logistic, tanh, relu, paramrelu, elu)
    or an object implementing ``func``/``grad``.  ``solver`` is one of the
    per-layer optimizers (sgd, momentum, agd, adagrad, rmsprop, adadelta,
    adam) or an externally driven method (lbfgs, bfgs, cg).  ``loss`` is one
    of square, log or cross-entropy; the two classification losses force a
    logistic (or softmax) output layer.
    """

    hidden_layer_sizes: Sequence[int] = ()
    activation: str | ActivationFunctions = "relu"
    solver: str = "adam"
    alpha: float = 0.0
    loss: str = "square"
    l1_ratio: float = 0.0
    weight_decay: float = 0.0
    gradient_clipping: float = 0.0
    batch_size: int | None = None
    epochs: int | None = None
    shuffle: bool = True
    early_stopping: bool = False
    max_epochs_without_progress: int = 10
    random_state: int | None = None
    learning_rate: float | None = None
    optimizer: OptimizerFactory | None = field(default=None, repr=False)
    minimizer: Minimizer | None = field(default=None, repr=False)
    warm_start: bool = False
    callbacks: List[object] = field(default_factory=list, repr=False)

    network_: Network | None = field(default=None, init=False, repr=False)
    loss_: float = field(default=math.inf, init=False)
    loss_first_: float = field(default=math.inf, init=False)
    loss_curve_: List[float] = field(default_factory=list, init=False, repr=False)
    n_epochs_: int = field(default=0, init=False)
    stalled_: bool = field(default=False, init=False)

    # ------------------------------------------------------------------
    # Configuration

    def _validate_config(self) -> None:
        if self.alpha < 0.0:
            raise ConfigurationError(f"alpha must be >= 0, got {self.alpha}")
        if not 0.0 <= self.l1_ratio <= 1.0:
            raise ConfigurationError(f"l1_ratio must be in [0, 1], got {self.l1_ratio}")
        if not 0.0 <= self.weight_decay < 1.0:
            raise ConfigurationError(f"weight_decay must be in [0, 1), got {self.weight_decay}")
        if self.gradient_clipping < 0.0:
            raise ConfigurationError("gradient_clipping must be >= 0")
        LOSS_REGISTRY.get(self.loss)
        if activation_name(get_activation(self.activation)) == "softmax":
            raise ConfigurationError(
                "softmax is only available as the output of the multi-output log loss"
            )
        if not is_external(self.solver):
            optimizer_factory(self.solver)

    def _optimizer_factory(self) -> OptimizerFactory | None:
        if is_external(self.solver):
            return None
        if self.optimizer is not None:
            return self.optimizer
        return optimizer_factory(self.solver, self.learning_rate)

    def allocate(self, n_features: int, n_outputs: int) -> Network:
        """(Re)build the layers for the given input and output widths.

        Weights start at zero; :meth:`fit` initializes them unless
        ``warm_start`` is set, so callers may load their own weights first.
        """

        self._validate_config()
        self.network_ = Network(
            n_features,
            n_outputs,
            self.hidden_layer_sizes,
            activation=self.activation,
            output_activation=LOSS_REGISTRY.output_activation(self.loss, n_outputs=n_outputs),
            optimizer_factory=self._optimizer_factory(),
        )
        return self.network_

    @property
    def layers_(self) -> List[Layer]:
        return list(self._require_network().layers)

    @property
    def coefs_(self) -> List[Array]:
        """Per-layer ``Theta`` views, bias in row 0."""

        return [layer.theta for layer in self._require_network().layers]

    def flat_parameters(self) -> Array:
        """The flat parameter vector backing every layer's ``Theta``."""

        return self._require_network().theta

    # ------------------------------------------------------------------
    # Training

    def fit(self, X: Array, Y: Array) -> "MLPRegressor":
        X, Y = self._validate_data(X, Y)
        n_samples, n_features = X.shape
        n_outputs = Y.shape[1]
        rng = np.random.default_rng(self.random_state)

        if self.warm_start and self.network_ is not None:
            self._validate_config()
            self._check_widths(n_features, n_outputs)
            factory = self._optimizer_factory()
            for layer in self.network_.layers:
                if layer.optimizer is None and factory is not None:
                    layer.optimizer = factory()
        else:
            self.allocate(n_features, n_outputs)
            self.network_.initialize(rng)

        network = self.network_
        epochs = self.epochs if self.epochs and self.epochs > 0 else default_epochs(n_samples)
        loss = LOSS_REGISTRY.resolve(self.loss, n_outputs=n_outputs)
        config = BackpropConfig(
            alpha=self.alpha,
            l1_ratio=self.l1_ratio,
            gradient_clipping=self.gradient_clipping,
        )
        if is_external(self.solver):
            runner = FullBatchRunner(network, loss, replace(config, apply_updates=False))
            minimizer = self.minimizer or ScipyMinimizer(EXTERNAL_SOLVERS[self.solver])
        else:
            runner = MinibatchRunner(
                network,
                loss,
                config,
                batch_size=self.batch_size,
                shuffle=self.shuffle,
                weight_decay=self.weight_decay,
                rng=rng,
            )
            minimizer = None

        trainer = Trainer(
            runner,
            epochs=epochs,
            early_stopping=self.early_stopping,
            max_epochs_without_progress=self.max_epochs_without_progress,
            callbacks=self.callbacks,
            minimizer=minimizer,
        )
        try:
            trainer.fit(X, Y)
        finally:
            self._store_result(trainer)
        return self

    def _store_result(self, trainer: Trainer) -> None:
        self.loss_ = trainer.loss
        self.loss_first_ = trainer.loss_first
        self.loss_curve_ = list(trainer.loss_curve)
        self.n_epochs_ = len(trainer.loss_curve)
        self.stalled_ = trainer.stalled

    @property
    def fit_result_(self) -> FitResult:
        return FitResult(
            loss=self.loss_,
            loss_first=self.loss_first_,
            n_epochs=self.n_epochs_,
            stalled=self.stalled_,
            loss_curve=list(self.loss_curve_),
        )

    # ------------------------------------------------------------------
    # Inference

    def predict(self, X: Array) -> Array:
        network = self._require_network()
        X = np.asarray(X, dtype=np.float64)
        return network.forward(X).copy()

    def score(self, X: Array, Y: Array) -> float:
        """R² for the square loss, accuracy otherwise."""

        Y = self._as_2d(Y)
        output_activation = self._require_network().output_layer.activation_name
        return score_predictions(
            self.loss, Y, MLPRegressor.predict(self, X), output_activation=output_activation
        )

    def fit_transform(self, X: Array, Y: Array) -> Tuple[Array, Array]:
        self.fit(X, Y)
        return X, self.predict(X)

    def transform(self, X: Array, Y: Array | None = None) -> Tuple[Array, Array]:
        return X, self.predict(X)

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _as_2d(Y: Array) -> Array:
        Y = np.asarray(Y, dtype=np.float64)
        return Y.reshape(-1, 1) if Y.ndim == 1 else Y

    def _validate_data(self, X: Array, Y: Array) -> Tuple[Array, Array]:
        X = np.asarray(X, dtype=np.float64)
        Y = self._as_2d(Y)
        if X.ndim != 2:
            raise ConfigurationError(f"X must be 2-D, got shape {X.shape}")
        if X.shape[0] != Y.shape[0]:
            raise ConfigurationError(
                f"X and Y must have the same number of rows, got {X.shape[0]} and {Y.shape[0]}"
            )
        if X.shape[0] == 0:
            raise ConfigurationError("Cannot fit on an empty dataset")
        return X, Y

    def _check_widths(self, n_features: int, n_outputs: int) -> None:
        network = self._require_network()
        if (network.n_features, network.n_outputs) != (n_features, n_outputs):
            raise ConfigurationError(
                f"Network was allocated for {network.n_features} features and "
                f"{network.n_outputs} outputs, got {n_features} and {n_outputs}"
            )

    def _require_network(self) -> Network:
        if self.network_ is None:
            raise RuntimeError("Estimator is not fitted; call fit or allocate first")
        return self.network_


@dataclass
class MLPClassifier(MLPRegressor):
    """MLP with a log-loss output; predictions are thresholded at 0.5.

    With more than one output the log loss uses a softmax layer and predicts
    one class per row.  Pass ``loss="cross-entropy"`` for multi-label targets,
    which keeps independent logistic outputs thresholded at 0.5.
    """

    loss: str = "log"

    def predict_proba(self, X: Array) -> Array:
        return super().predict(X)

    def predict(self, X: Array) -> Array:
        proba = self.predict_proba(X)
        softmax = self._require_network().output_layer.activation_name == "softmax"
        return predicted_labels(proba, one_hot=softmax)


__all__ = ["MLPRegressor", "MLPClassifier"]
