"""Qt-free helpers: conversion, URL sanitizing, storage and paths."""
