"""
scripts

Scripts exécutables (CLI) autour du moteur de scoring :
- make_dataset : jeu de demandeurs synthétique (CSV labellisé)
- train_logreg : entraînement hors ligne + évaluation hold-out + export du bundle
- score_one    : scoring d’un demandeur depuis un bundle, sans passer par l’API

Note :
- Les scripts orchestrent et appellent `creditrisk` ; aucune logique métier centrale ici.
"""
